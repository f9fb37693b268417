"""Desktop application shell for ImiTune."""

import sys
from typing import Optional

from PySide6.QtWidgets import QApplication

from imitune.pipeline import ImitationPipeline, build_pipeline
from imitune.ui.main_window import MainWindow
from imitune.utils.logger import setup_logger

logger = setup_logger(__name__)


class ImituneApp:
    """Main application class for ImiTune."""

    def __init__(self, pipeline: Optional[ImitationPipeline] = None) -> None:
        """Initialize the application.

        Args:
            pipeline: Pre-built pipeline; built from config when omitted.
        """
        self.app = QApplication.instance()
        if self.app is None:
            self.app = QApplication(sys.argv)

        self.pipeline = pipeline or build_pipeline()
        self.main_window = MainWindow(self.pipeline)
        self.app.aboutToQuit.connect(self.cleanup)
        self._cleaned_up = False

        logger.info("🟢 ImituneApp initialized")

    def run(self) -> int:
        """Show the window and run the Qt event loop."""
        self.main_window.show()
        return self.app.exec()

    def cleanup(self) -> None:
        """Release the audio device and worker thread. Safe to call twice."""
        if self._cleaned_up:
            return
        self._cleaned_up = True
        logger.info("Cleaning up ImiTune...")
        self.pipeline.close()
        logger.info("🟢 Cleanup complete")
