"""User interface modules."""

from imitune.ui.app import ImituneApp
from imitune.ui.main_window import MainWindow
from imitune.ui.waveform_widget import WaveformWidget

__all__ = ["ImituneApp", "MainWindow", "WaveformWidget"]
