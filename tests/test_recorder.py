"""
Tests for the Training Recorder
===============================
"""

import numpy as np
import pytest

from fingerspell.data.sample_store import SampleStore, SampleStoreConfig
from fingerspell.recognition.recorder import RecorderConfig, TrainingRecorder

from hand_shapes import letter_frame


class TestTrainingRecorder:
    """Test suite for timed sample recording."""

    @pytest.fixture
    def store(self):
        return SampleStore(SampleStoreConfig(data_dir=None))

    @pytest.fixture
    def recorder(self, store):
        return TrainingRecorder(store, RecorderConfig(target_samples=3, interval_ms=180))

    def test_start(self, recorder):
        progress = recorder.start(" c ")
        assert recorder.is_recording
        assert progress.letter == "C"
        assert progress.count == 0
        assert progress.target == 3
        assert progress.active

    @pytest.mark.parametrize("letter", ["", "CC", "3", None])
    def test_start_rejects_invalid_letter(self, recorder, letter):
        with pytest.raises(ValueError):
            recorder.start(letter)
        assert not recorder.is_recording

    def test_spacing(self, recorder, store):
        recorder.start("C")
        frame = letter_frame("C")
        assert recorder.offer(frame, 0.0)
        assert not recorder.offer(frame, 0.1)
        assert recorder.offer(frame, 0.25)
        assert recorder.progress.count == 2
        assert store.get_sample_counts() == {"C": 2}

    @pytest.mark.parametrize("first,second", [(0.2, 0.38), (0.1, 0.28), (3.3, 3.48)])
    def test_spacing_is_inclusive(self, recorder, first, second):
        recorder.start("C")
        frame = letter_frame("C")
        assert recorder.offer(frame, first)
        assert recorder.offer(frame, second)
        assert recorder.progress.count == 2

    def test_stops_at_target(self, recorder, store):
        recorder.start("C")
        frame = letter_frame("C")
        for i in range(5):
            recorder.offer(frame, i * 0.2)
        assert not recorder.is_recording
        assert store.get_sample_counts() == {"C": 3}
        assert recorder.progress.count == 0

    def test_rejected_frame_not_counted(self, recorder, store):
        recorder.start("C")
        assert not recorder.offer(np.zeros((21, 3)), 0.0)
        assert not recorder.offer(None, 0.5)
        assert recorder.progress.count == 0
        assert recorder.offer(letter_frame("C"), 1.0)
        assert recorder.progress.count == 1
        assert len(store) == 1

    def test_cancel_keeps_saved_samples(self, recorder, store):
        recorder.start("C")
        recorder.offer(letter_frame("C"), 0.0)
        progress = recorder.cancel()
        assert progress.count == 1
        assert progress.active
        assert not recorder.is_recording
        assert store.get_sample_counts() == {"C": 1}

    def test_not_recording_ignores_frames(self, recorder, store):
        assert not recorder.offer(letter_frame("C"), 0.0)
        assert len(store) == 0

    def test_restart_resets_count(self, recorder):
        recorder.start("C")
        recorder.offer(letter_frame("C"), 0.0)
        progress = recorder.start("D")
        assert progress.letter == "D"
        assert progress.count == 0

    def test_progress_fraction(self, recorder):
        recorder.start("C")
        recorder.offer(letter_frame("C"), 0.0)
        assert recorder.progress.fraction == pytest.approx(1 / 3)

    def test_config_from_dict(self):
        config = RecorderConfig.from_dict({"target_samples": 7})
        assert config.target_samples == 7
        assert config.interval_ms == 180
