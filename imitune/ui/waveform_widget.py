"""
Waveform display for a finished take.
Uses pyqtgraph to draw one min/max stroke per column plus a playhead.
"""

from typing import Optional

import numpy as np
import pyqtgraph as pg
from PySide6.QtCore import Slot
from PySide6.QtWidgets import QVBoxLayout, QWidget

from imitune.audio.types import WaveformSummary
from imitune.utils.logger import setup_logger

logger = setup_logger(__name__)


def summary_segments(summary: WaveformSummary):
    """Build x/y/connect arrays drawing each stroked column as a vertical line.

    Returns:
        Tuple of (x, y, connect) arrays for ``PlotDataItem.setData``.
    """
    columns = np.flatnonzero(summary.stroked)
    x = np.repeat(columns.astype(np.float64), 2)
    y = np.empty(2 * len(columns), dtype=np.float64)
    y[0::2] = summary.mins[columns]
    y[1::2] = summary.maxs[columns]
    connect = np.zeros(len(x), dtype=bool)
    connect[0::2] = True
    return x, y, connect


class WaveformWidget(QWidget):
    """Widget drawing a waveform summary and the playback position."""

    def __init__(self, width: int = 600) -> None:
        super().__init__()
        self.columns = width
        self.summary: Optional[WaveformSummary] = None

        self._setup_ui()
        logger.info("🟢 WaveformWidget initialized")

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        pg.setConfigOptions(antialias=True)

        self.plot_widget = pg.PlotWidget()
        self.plot_widget.setBackground("#1E1E1E")
        self.plot_widget.showGrid(False, False)
        self.plot_widget.hideAxis("left")
        self.plot_widget.hideAxis("bottom")
        self.plot_widget.setMouseEnabled(False, False)
        self.plot_widget.setMenuEnabled(False)

        self.centre_line = pg.InfiniteLine(
            pos=0, angle=0, pen=pg.mkPen(color="#3A3A3A", width=1)
        )
        self.plot_widget.addItem(self.centre_line)

        self.plot_curve = self.plot_widget.plot(pen=pg.mkPen(color="#007AFF", width=2))

        self.playhead = pg.InfiniteLine(
            pos=0, angle=90, pen=pg.mkPen(color="#FF9500", width=1)
        )
        self.playhead.setVisible(False)
        self.plot_widget.addItem(self.playhead)

        self.placeholder = pg.TextItem("", color="#8E8E93", anchor=(0.5, 0.5))
        self.placeholder.setPos(self.columns / 2, 0)
        self.plot_widget.addItem(self.placeholder)

        self.plot_widget.setYRange(-1, 1, padding=0.1)
        self.plot_widget.setXRange(0, self.columns, padding=0)

        layout.addWidget(self.plot_widget)

    @Slot(object)
    def set_summary(self, summary: Optional[WaveformSummary]) -> None:
        """Show a new summary, or clear the display when None."""
        self.summary = summary
        self.set_progress(0.0)

        if summary is None:
            self.plot_curve.setData([], [])
            self.placeholder.setText("")
            return

        self.columns = summary.width
        self.plot_widget.setXRange(0, self.columns, padding=0)
        self.placeholder.setPos(self.columns / 2, 0)

        x, y, connect = summary_segments(summary)
        self.plot_curve.setData(x, y, connect=connect)
        self.placeholder.setText("No sound detected" if summary.is_silent else "")
        logger.debug(f"Waveform drawn: {int(summary.stroked.sum())} stroked columns")

    @Slot(float)
    def set_progress(self, progress: float) -> None:
        """Move the playhead to ``progress`` (0..1) of the trimmed content."""
        if self.summary is None or progress <= 0.0:
            self.playhead.setVisible(False)
            return
        self.playhead.setValue(min(1.0, progress) * self.columns)
        self.playhead.setVisible(True)

    def clear(self) -> None:
        self.set_summary(None)
