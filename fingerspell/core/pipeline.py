"""
Per-tick pipeline orchestrator for the fingerspelling recognizer.

Architecture:
    hand frame -> [TrainingRecorder -> SampleStore]        (while recording)
    hand frame -> ClassifierArbiter -> TemporalStabilizer  (otherwise)
                  |- KNNClassifier (SampleStore)
                  `- RuleClassifier

One synchronous pass per externally delivered frame. Nothing here blocks;
the letter hold and recording spacing are wall-clock gates checked on
each tick.
"""

import time
import logging
from typing import Callable, Dict, Optional

from fingerspell.core.events import EventBus, Events
from fingerspell.core.types import RecordingProgress, TickResult, normalize_letter
from fingerspell.data.sample_store import SampleStore, SampleStoreConfig
from fingerspell.recognition.arbiter import ClassifierArbiter, ArbiterConfig
from fingerspell.recognition.features import FeatureConfig
from fingerspell.recognition.knn_classifier import KNNClassifier, KNNConfig
from fingerspell.recognition.recorder import TrainingRecorder, RecorderConfig
from fingerspell.recognition.rule_classifier import RuleClassifier, RuleClassifierConfig
from fingerspell.recognition.stabilizer import TemporalStabilizer, StabilizerConfig
from fingerspell.utils.logger import LetterLogger

logger = logging.getLogger(__name__)


class FingerspellPipeline:
    """Composable recognition pipeline.

    Manages the recognize-stabilize-emit cycle with:
    - Training recording that bypasses classification
    - Session lifecycle (start/stop/reset)
    - Text commit callback
    - Event bus integration
    """

    def __init__(
        self,
        store: SampleStore,
        arbiter: ClassifierArbiter,
        stabilizer: TemporalStabilizer,
        recorder: TrainingRecorder,
        event_bus: Optional[EventBus] = None,
        letter_logger: Optional[LetterLogger] = None,
    ):
        self._store = store
        self._arbiter = arbiter
        self._stabilizer = stabilizer
        self._recorder = recorder
        self._bus = event_bus or EventBus()
        self._letter_logger = letter_logger or LetterLogger()

        self._on_text: Optional[Callable[[str], None]] = None
        self._session_active = False
        self._hand_present = False
        self._last_stable: Optional[str] = None
        self._tick_count = 0

    @classmethod
    def from_config(cls, config, event_bus: Optional[EventBus] = None,
                    store: Optional[SampleStore] = None) -> "FingerspellPipeline":
        """Build every component from a loaded Config."""
        feature_config = FeatureConfig.from_dict(config.features)
        if store is None:
            store = SampleStore(SampleStoreConfig.from_dict(config.storage), feature_config)
        rules = RuleClassifier(RuleClassifierConfig.from_dict(config.rules), feature_config)
        knn = KNNClassifier(store, KNNConfig.from_dict(config.knn), feature_config)
        arbiter = ClassifierArbiter(rules, knn, ArbiterConfig.from_dict(config.arbiter))
        stabilizer = TemporalStabilizer(arbiter, StabilizerConfig.from_dict(config.stabilizer))
        recorder = TrainingRecorder(store, RecorderConfig.from_dict(config.recorder))
        return cls(store, arbiter, stabilizer, recorder, event_bus=event_bus)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def process_tick(self, frame, now: Optional[float] = None) -> TickResult:
        """Execute one pipeline iteration.

        Args:
            frame: 21 hand landmarks, or None when no hand was detected
            now: Tick time in seconds (defaults to time.time())

        Returns:
            TickResult with stable letter, mean confidence and text
        """
        now = time.time() if now is None else now
        self._tick_count += 1
        self._track_hand(frame is not None)

        if frame is None:
            result = self._stabilizer.hand_lost(now)
            self._track_stable(None)
            if self._recorder.is_recording:
                result.recording = self._recorder.progress
            return result

        if self._recorder.is_recording:
            return self._record_tick(frame, now)

        result = self._stabilizer.process_tick(frame, now)
        self._track_stable(result.stable_letter)

        if result.emitted:
            raw = result.raw
            self._letter_logger.log_letter(
                result.emitted, result.mean_confidence,
                source=raw.source.value if raw is not None else None, text=result.text,
            )
            self._bus.emit(Events.LETTER_EMITTED, letter=result.emitted,
                           text=result.text, confidence=result.mean_confidence)
        return result

    def _record_tick(self, frame, now: float) -> TickResult:
        letter = self._recorder.letter
        added = self._recorder.offer(frame, now)

        if not self._recorder.is_recording:
            target = self._recorder.config.target_samples
            progress = RecordingProgress(letter, target, target, active=False)
        else:
            progress = self._recorder.progress

        if added:
            self._after_sample(letter, progress.count, progress.target)
            self._bus.emit(Events.RECORDING_PROGRESS, progress=progress)
            if not progress.active:
                self._bus.emit(Events.RECORDING_COMPLETE, letter=letter,
                               counts=self.get_sample_counts())

        return TickResult(
            text=self._stabilizer.text,
            hand_detected=True,
            recording=progress,
            timestamp=now,
        )

    def _track_hand(self, present: bool):
        if present and not self._hand_present:
            self._bus.emit(Events.HAND_DETECTED)
        elif not present and self._hand_present:
            self._bus.emit(Events.HAND_LOST)
        self._hand_present = present

    def _track_stable(self, letter: Optional[str]):
        if letter is not None and letter != self._last_stable:
            self._bus.emit(Events.LETTER_STABLE, letter=letter)
        self._last_stable = letter

    # ------------------------------------------------------------------
    # Session & text
    # ------------------------------------------------------------------

    def set_on_text(self, callback: Optional[Callable[[str], None]]):
        """Register the receiver for committed text (e.g. a chat box)."""
        self._on_text = callback

    def start_session(self):
        """Start a capture session with empty votes and text."""
        self.reset_session()
        self._session_active = True
        self._bus.emit(Events.SESSION_STARTED)
        logger.info("Session started")

    def stop_session(self) -> str:
        """Stop the capture session.

        Flushes any accumulated text to the text callback, discards an
        in-progress recording and clears all session state.

        Returns:
            The text that was flushed (may be empty)
        """
        text = self._stabilizer.text.strip()
        if text:
            self._deliver(text)
        if self._recorder.is_recording:
            self.cancel_recording()
        self.reset_session()
        self._session_active = False
        self._bus.emit(Events.SESSION_STOPPED, text=text)
        logger.info("Session stopped")
        return text

    def reset_session(self):
        """Clear vote buffer and emission state."""
        self._stabilizer.reset_session()
        self._hand_present = False
        self._last_stable = None

    def commit_text(self) -> str:
        """Send the accumulated text to the text callback and clear it."""
        text = self._stabilizer.commit_text()
        self._stabilizer.buffer.clear()
        self._last_stable = None
        if text:
            self._deliver(text)
        return text

    def clear_text(self):
        """Drop the accumulated text without delivering it."""
        self._stabilizer.clear_text()
        self._last_stable = None

    def _deliver(self, text: str):
        self._bus.emit(Events.TEXT_COMMITTED, text=text)
        if self._on_text is None:
            return
        try:
            self._on_text(text)
        except Exception as e:
            logger.error("Text callback failed: %s", e)

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def start_recording(self, letter) -> RecordingProgress:
        """Begin recording training samples for a letter."""
        progress = self._recorder.start(letter)
        self._bus.emit(Events.RECORDING_STARTED, progress=progress)
        return progress

    def cancel_recording(self) -> RecordingProgress:
        """Discard the in-progress recording; saved samples are kept."""
        progress = self._recorder.cancel()
        if progress.active:
            self._bus.emit(Events.RECORDING_CANCELLED, progress=progress)
        return progress

    def add_training_sample(self, letter, frame) -> bool:
        """Add a single training sample directly."""
        if not self._store.add_sample(letter, frame):
            return False
        label = normalize_letter(letter)
        self._after_sample(label, self.get_sample_counts().get(label, 0))
        return True

    def _after_sample(self, letter: str, count: int, target: Optional[int] = None):
        durable = self._store.last_error is None
        self._letter_logger.log_sample(letter, count, target, durable=durable)
        self._bus.emit(Events.SAMPLE_ADDED, letter=letter, count=count)
        if not durable:
            self._bus.emit(Events.STORE_PERSISTENCE_FAILED, error=self._store.last_error)

    def get_sample_counts(self) -> Dict[str, int]:
        return self._store.get_sample_counts()

    def is_trained(self) -> bool:
        return self._store.is_trained()

    def clear_samples(self):
        """Remove every training sample and stop any recording."""
        self.cancel_recording()
        self._store.clear_samples()
        self._bus.emit(Events.SAMPLES_CLEARED)
        if self._store.last_error is not None:
            self._bus.emit(Events.STORE_PERSISTENCE_FAILED, error=self._store.last_error)

    def training_status(self) -> str:
        """Human-readable training summary."""
        if self._recorder.is_recording:
            p = self._recorder.progress
            return f"Recording {p.letter}… {p.count}/{p.target}. Hold your hand steady."
        counts = self.get_sample_counts()
        if not counts:
            return "No model trained. Record at least 5 samples per letter for 2+ letters."
        parts = ", ".join(f"{letter}: {n}" for letter, n in sorted(counts.items()))
        active = " (active)" if self.is_trained() else ""
        return f"Trained: {parts}{active}"

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def text(self) -> str:
        return self._stabilizer.text

    @property
    def is_session_active(self) -> bool:
        return self._session_active

    @property
    def is_recording(self) -> bool:
        return self._recorder.is_recording

    @property
    def recording_progress(self) -> RecordingProgress:
        return self._recorder.progress

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def stats(self) -> dict:
        stats = dict(self._arbiter.stats)
        stats["ticks"] = self._tick_count
        stats["samples"] = len(self._store)
        stats["trained"] = self._store.is_trained()
        return stats

    @property
    def store(self) -> SampleStore:
        return self._store

    @property
    def stabilizer(self) -> TemporalStabilizer:
        return self._stabilizer
