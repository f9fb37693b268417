"""
Main application window for ImiTune.
Record an imitation, review its waveform, and browse matching sounds.
"""

from concurrent.futures import Future
from functools import partial
from typing import List, Optional

from PySide6.QtCore import Qt, QTimer, Signal, Slot
from PySide6.QtGui import QFont, QKeySequence, QShortcut
from PySide6.QtWidgets import (
    QFrame,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from imitune.audio.playback import PlaybackController, SoundDevicePlayer
from imitune.audio.session import SessionState
from imitune.audio.types import Take
from imitune.config.config_loader import config
from imitune.pipeline import (
    INFERENCE_MESSAGE,
    SILENT_MESSAGE,
    ImitationPipeline,
    OutcomeStatus,
    SearchOutcome,
)
from imitune.services.feedback_client import Rating
from imitune.services.search_client import SearchResult
from imitune.utils.exceptions import ImituneError
from imitune.utils.logger import setup_logger

from .waveform_widget import WaveformWidget

logger = setup_logger(__name__)

RATING_LABELS = {Rating.LIKE: "👍", Rating.DISLIKE: "👎", Rating.NEUTRAL: ""}


class MainWindow(QMainWindow):
    """Main window: record button, waveform, playback and search results."""

    # Emitted from worker threads, delivered on the GUI thread
    outcome_ready = Signal(object)
    playback_finished = Signal()
    feedback_done = Signal(str)

    def __init__(self, pipeline: ImitationPipeline):
        super().__init__()
        self.pipeline = pipeline
        self.session = pipeline.session
        self.setWindowTitle("● ImiTune")
        self.setMinimumSize(640, 560)

        self._current_state = SessionState.IDLE.value
        self._take: Optional[Take] = None
        self._results: List[SearchResult] = []
        self._ratings: List[Rating] = []
        self._player: Optional[SoundDevicePlayer] = None
        self._playback: Optional[PlaybackController] = None

        # Polls the output clock while playing
        self._playhead_timer = QTimer()
        self._playhead_timer.setInterval(30)
        self._playhead_timer.timeout.connect(self._update_playhead)

        self._setup_ui()
        self._apply_styles()
        self._setup_shortcuts()
        self._connect_signals()

        logger.info("🟢 MainWindow initialized")

    def _setup_ui(self):
        """Set up the UI components."""
        central_widget = QWidget()
        self.setCentralWidget(central_widget)

        main_layout = QVBoxLayout(central_widget)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        main_layout.addWidget(self._create_header())

        self.waveform_widget = WaveformWidget(
            width=config.get("waveform.width", 600)
        )
        self.waveform_widget.setMinimumHeight(150)
        main_layout.addWidget(self.waveform_widget)

        main_layout.addWidget(self._create_controls())

        separator = QFrame()
        separator.setFrameShape(QFrame.HLine)
        separator.setFixedHeight(1)
        main_layout.addWidget(separator)

        self.results_list = QListWidget()
        self.results_list.setObjectName("results")
        main_layout.addWidget(self.results_list)

        main_layout.addWidget(self._create_feedback_bar())

        self.hint_label = QLabel("Press Record and imitate a sound.")
        self.hint_label.setAlignment(Qt.AlignCenter)
        self.hint_label.setFixedHeight(40)
        main_layout.addWidget(self.hint_label)

    def _create_header(self) -> QWidget:
        """Create the header widget with status indicator."""
        header = QWidget()
        header.setFixedHeight(40)
        layout = QHBoxLayout(header)
        layout.setContentsMargins(10, 0, 10, 0)

        self.status_dot = QLabel("●")
        self.status_dot.setFixedWidth(20)
        layout.addWidget(self.status_dot)

        title = QLabel(config.get("app.name", "ImiTune"))
        title.setFont(QFont("", 14, QFont.Bold))
        layout.addWidget(title)

        layout.addStretch()
        return header

    def _create_controls(self) -> QWidget:
        controls = QWidget()
        controls.setFixedHeight(50)
        layout = QHBoxLayout(controls)
        layout.setContentsMargins(10, 0, 10, 0)

        self.record_btn = QPushButton("⏺ Record")
        self.record_btn.clicked.connect(self._toggle_recording)
        layout.addWidget(self.record_btn)

        self.play_btn = QPushButton("▶ Play")
        self.play_btn.setEnabled(False)
        self.play_btn.clicked.connect(self._toggle_playback)
        layout.addWidget(self.play_btn)

        self.search_btn = QPushButton("🔍 Search")
        self.search_btn.setEnabled(False)
        self.search_btn.clicked.connect(self._search)
        layout.addWidget(self.search_btn)

        layout.addStretch()
        return controls

    def _create_feedback_bar(self) -> QWidget:
        bar = QWidget()
        bar.setFixedHeight(44)
        layout = QHBoxLayout(bar)
        layout.setContentsMargins(10, 0, 10, 0)

        self.like_btn = QPushButton(RATING_LABELS[Rating.LIKE])
        self.like_btn.setToolTip("Good match")
        self.like_btn.clicked.connect(lambda: self._rate_selected(Rating.LIKE))
        layout.addWidget(self.like_btn)

        self.dislike_btn = QPushButton(RATING_LABELS[Rating.DISLIKE])
        self.dislike_btn.setToolTip("Poor match")
        self.dislike_btn.clicked.connect(lambda: self._rate_selected(Rating.DISLIKE))
        layout.addWidget(self.dislike_btn)

        layout.addStretch()

        self.feedback_btn = QPushButton("Send feedback")
        self.feedback_btn.clicked.connect(self._send_feedback)
        layout.addWidget(self.feedback_btn)

        self._set_feedback_enabled(False)
        return bar

    def _setup_shortcuts(self):
        """Set up keyboard shortcuts."""
        record_shortcut = QShortcut(QKeySequence("Space"), self)
        record_shortcut.activated.connect(self._toggle_recording)
        logger.info("🟢 MainWindow keyboard shortcuts set up (Space to record)")

    def _connect_signals(self):
        self.session.state_changed.connect(self.update_state)
        self.session.take_ready.connect(self.show_take)
        self.session.error.connect(self.show_error)
        self.outcome_ready.connect(self.show_outcome)
        self.playback_finished.connect(self._on_playback_ended)
        self.feedback_done.connect(self._on_feedback_message)

    def _apply_styles(self):
        """Apply the dark mode stylesheet."""
        self.setStyleSheet(
            """
            QMainWindow { background-color: #1E1E1E; }
            QLabel { color: #EAEAEA; background-color: transparent; }
            QListWidget {
                background-color: #2A2A2A;
                color: #EAEAEA;
                border: none;
                padding: 6px;
                font-size: 13px;
            }
            QPushButton {
                background-color: #2A2A2A;
                color: #EAEAEA;
                border: 1px solid #3A3A3A;
                border-radius: 4px;
                padding: 6px 12px;
            }
            QPushButton:hover { background-color: #3A3A3A; }
            QPushButton:disabled { color: #5A5A5A; }
            QFrame[frameShape="4"] { background-color: #3A3A3A; }
            """
        )
        self._update_status_dot_color()

    def _update_status_dot_color(self):
        colors = {
            SessionState.IDLE.value: "#8E8E93",
            SessionState.RECORDING.value: "#FF3B30",
            SessionState.FINALIZING.value: "#FFD60A",
            SessionState.READY.value: "#34C759",
        }
        color = colors.get(self._current_state, "#8E8E93")
        self.status_dot.setStyleSheet(f"color: {color};")

    # Session events

    @Slot(str)
    def update_state(self, state: str):
        """Update the UI for a session state change."""
        self._current_state = state
        logger.info(f"🟢 MainWindow state changed to: {state}")
        self._update_status_dot_color()

        recording = state == SessionState.RECORDING.value
        if recording:
            self.record_btn.setText("⏹ Stop")
        elif state == SessionState.READY.value:
            self.record_btn.setText("⏺ Re-record")
        else:
            self.record_btn.setText("⏺ Record")
        if recording:
            self._stop_playback()
            self._take = None
            self.waveform_widget.clear()
            self._show_results([])
            self.play_btn.setEnabled(False)
            self.search_btn.setEnabled(False)
            self.hint_label.setText("Recording... press Stop when done.")
        elif state == SessionState.FINALIZING.value:
            self.hint_label.setText("Processing...")

    @Slot(object)
    def show_take(self, take: Take):
        """Draw a finished take and enable playback and search."""
        if not self.session.is_current(take.sequence):
            return
        self._take = take
        self.waveform_widget.set_summary(take.summary)
        self.play_btn.setEnabled(True)
        self.search_btn.setEnabled(not take.is_silent)
        if take.is_silent:
            self.hint_label.setText(SILENT_MESSAGE)
        else:
            self.hint_label.setText(
                f"Captured {take.bounds.trimmed_duration_seconds:.1f}s. Press Search."
            )

    @Slot(str)
    def show_error(self, message: str):
        self.status_dot.setStyleSheet("color: #FF3B30;")
        self.hint_label.setText(message)

    # Recording

    def _toggle_recording(self):
        try:
            if self.session.state is SessionState.RECORDING:
                self.session.stop()
            else:
                self.session.start()
        except ImituneError as e:
            # Session already reported the error through its signal
            logger.error(f"🛑 Recording action failed: {e}")

    # Playback

    def _toggle_playback(self):
        if self._player is not None and self._player.is_playing:
            self._stop_playback()
            return
        if self._take is None:
            return

        self._stop_playback()
        self._playback = PlaybackController.from_take(self._take)
        self._player = SoundDevicePlayer(
            self._take.signal,
            on_finished=self.playback_finished.emit,
        )
        try:
            self._playback.play(self._player)
        except Exception as e:
            logger.error(f"🛑 Playback failed: {e}")
            self.show_error(f"Playback failed: {e}")
            self._stop_playback()
            return
        self.play_btn.setText("⏸ Pause")
        self._playhead_timer.start()

    def _update_playhead(self):
        if self._player is None or self._playback is None:
            return
        progress = self._playback.on_position(self._player.current_time)
        self.waveform_widget.set_progress(progress)

    @Slot()
    def _on_playback_ended(self):
        if self._playback is not None:
            self._playback.on_ended()
        self._stop_playback()

    def _stop_playback(self):
        self._playhead_timer.stop()
        if self._playback is not None and self._player is not None:
            self._playback.pause(self._player)
        if self._player is not None:
            self._player.close()
        self._player = None
        self._playback = None
        self.waveform_widget.set_progress(0.0)
        self.play_btn.setText("▶ Play")

    # Search

    def _search(self):
        if self._take is None:
            return
        self.search_btn.setEnabled(False)
        self.hint_label.setText("Searching...")
        sequence = self._take.sequence
        future = self.pipeline.submit_async(self._take)
        future.add_done_callback(partial(self._on_search_done, sequence=sequence))

    def _on_search_done(self, future: "Future[SearchOutcome]", sequence: int):
        # Worker thread: hand over to the GUI thread
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"🛑 Search crashed for take #{sequence}: {error}")
            self.outcome_ready.emit(
                SearchOutcome(
                    OutcomeStatus.INFERENCE_ERROR,
                    sequence,
                    message=f"{INFERENCE_MESSAGE} ({error})",
                )
            )
            return
        self.outcome_ready.emit(future.result())

    @Slot(object)
    def show_outcome(self, outcome: SearchOutcome):
        """Display a pipeline outcome; stale outcomes are ignored."""
        if outcome.status is OutcomeStatus.STALE:
            return
        if self._take is None or outcome.sequence != self._take.sequence:
            return
        if not self._take.is_silent:
            self.search_btn.setEnabled(True)

        if outcome.ok:
            self._show_results(outcome.results)
            count = len(outcome.results)
            self.hint_label.setText(
                f"{count} matching sounds." if count else "No matching sounds found."
            )
        else:
            self._show_results([])
            self.show_error(outcome.message)

    def _show_results(self, results: List[SearchResult]):
        self._results = list(results)
        self._ratings = [Rating.NEUTRAL] * len(self._results)
        self.results_list.clear()
        for result in self._results:
            self.results_list.addItem(QListWidgetItem(self._result_label(result)))
        self._set_feedback_enabled(bool(self._results))

    @staticmethod
    def _result_label(result: SearchResult, rating: Rating = Rating.NEUTRAL) -> str:
        mark = RATING_LABELS[rating]
        return f"{result.score:.3f}  {result.url}  {mark}".rstrip()

    # Feedback

    def _set_feedback_enabled(self, enabled: bool):
        enabled = enabled and self.pipeline.feedback_client is not None
        for button in (self.like_btn, self.dislike_btn, self.feedback_btn):
            button.setEnabled(enabled)

    def _rate_selected(self, rating: Rating):
        row = self.results_list.currentRow()
        if row < 0 or row >= len(self._results):
            return
        # Clicking the same rating again clears it
        if self._ratings[row] is rating:
            rating = Rating.NEUTRAL
        self._ratings[row] = rating
        self.results_list.item(row).setText(
            self._result_label(self._results[row], rating)
        )

    def _send_feedback(self):
        if self._take is None or not self._results:
            return
        take, results, ratings = self._take, list(self._results), list(self._ratings)
        self.feedback_btn.setEnabled(False)
        self.hint_label.setText("Sending feedback...")

        future = self.pipeline.submit_feedback_async(take, results, ratings)
        future.add_done_callback(self._on_feedback_done)

    def _on_feedback_done(self, future: Future):
        # Worker thread: hand over to the GUI thread
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"🛑 Feedback failed: {error}")
            self.feedback_done.emit(f"Feedback failed: {error}")
            return
        response = future.result()
        self.feedback_done.emit(response.message or "Thanks for the feedback!")

    @Slot(str)
    def _on_feedback_message(self, message: str):
        self.hint_label.setText(message)
        self._set_feedback_enabled(bool(self._results))

    def closeEvent(self, event):
        """Handle window close event."""
        self._stop_playback()
        logger.info("🟢 MainWindow closed")
        super().closeEvent(event)
