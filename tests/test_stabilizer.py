"""
Tests for the Temporal Stabilizer
=================================
"""

import pytest

from fingerspell.core.types import ClassificationResult, ResultSource
from fingerspell.recognition.arbiter import ClassifierArbiter
from fingerspell.recognition.rule_classifier import RuleClassifier
from fingerspell.recognition.stabilizer import (
    LetterEmitter, StabilizerConfig, TemporalStabilizer, VoteBuffer,
)

from hand_shapes import letter_frame


def vote(letter, confidence=0.88):
    return ClassificationResult(letter, confidence, ResultSource.RULES)


NOTHING = ClassificationResult.none()


class TestVoteBuffer:
    """Test suite for the majority vote buffer."""

    def test_majority_needed(self):
        buffer = VoteBuffer(size=8, majority=5)
        for _ in range(4):
            buffer.push("B", 0.88)
        assert buffer.stable_letter() is None
        buffer.push("B", 0.88)
        assert buffer.stable_letter() == "B"

    def test_capacity_evicts_oldest(self):
        buffer = VoteBuffer(size=8, majority=5)
        for letter in "AAAAABBB":
            buffer.push(letter, 0.7)
        assert buffer.stable_letter() == "A"
        buffer.push("B", 0.7)
        buffer.push("B", 0.7)
        assert len(buffer) == 8
        assert buffer.contents == list("AAABBBBB")
        assert buffer.stable_letter() == "B"

    def test_empty_votes_never_win(self):
        buffer = VoteBuffer(size=8, majority=5)
        for _ in range(8):
            buffer.push(None, 0.0)
        assert buffer.stable_letter() is None
        assert buffer.mean_confidence() == 0.0

    @pytest.mark.parametrize("votes", ["AAAABBBB", "AABBCCDD"])
    def test_mixed_buffer_has_no_stable_letter(self, votes):
        buffer = VoteBuffer(size=8, majority=5)
        for letter in votes:
            buffer.push(letter, 0.88)
        assert len(buffer) == 8
        assert buffer.stable_letter() is None

    def test_mean_over_all_entries(self):
        buffer = VoteBuffer(size=8, majority=5)
        for _ in range(5):
            buffer.push("B", 0.88)
        for _ in range(3):
            buffer.push(None, 0.9)
        assert buffer.mean_confidence() == pytest.approx(5 * 0.88 / 8)


class TestLetterEmitter:
    """Test suite for debounced emission."""

    def test_new_letter_is_immediate(self):
        emitter = LetterEmitter(hold_ms=500)
        assert emitter.offer("H", 0.0)
        assert emitter.offer("I", 0.01)
        assert emitter.text == "HI"

    def test_repeat_needs_hold(self):
        emitter = LetterEmitter(hold_ms=500)
        assert emitter.offer("L", 0.0)
        assert not emitter.offer("L", 0.3)
        assert emitter.offer("L", 0.6)
        assert emitter.text == "LL"

    @pytest.mark.parametrize("first,second", [(0.2, 0.7), (0.1, 0.6), (1.7, 2.2), (12.3, 12.8)])
    def test_repeat_at_exactly_hold(self, first, second):
        emitter = LetterEmitter(hold_ms=500)
        assert emitter.offer("A", first)
        assert not emitter.offer("A", second - 0.01)
        assert emitter.offer("A", second)
        assert emitter.text == "AA"


class TestTemporalStabilizer:
    """Test suite for the vote/emit state machine."""

    @pytest.fixture
    def stabilizer(self):
        return TemporalStabilizer()

    def push(self, stabilizer, result, count, now=0.0):
        tick = None
        for _ in range(count):
            tick = stabilizer.update(result, now)
        return tick

    def test_emits_at_majority(self, stabilizer):
        tick = self.push(stabilizer, vote("B"), 4)
        assert tick.stable_letter is None
        assert tick.emitted is None
        assert tick.current_letter == "B"

        tick = stabilizer.update(vote("B"), 0.0)
        assert tick.stable_letter == "B"
        assert tick.is_stable
        assert tick.emitted == "B"
        assert tick.text == "B"
        assert tick.mean_confidence == pytest.approx(0.88)

    def test_debounce_timeline(self, stabilizer):
        tick = self.push(stabilizer, vote("B"), 5, now=0.0)
        assert tick.emitted == "B"

        assert stabilizer.update(vote("B"), 0.3).emitted is None
        assert stabilizer.update(vote("B"), 0.6).emitted == "B"
        assert stabilizer.update(vote("B"), 0.65).emitted is None
        assert stabilizer.text == "BB"

    def test_letter_change_emits_immediately(self, stabilizer):
        self.push(stabilizer, vote("B"), 5, now=0.0)
        tick = self.push(stabilizer, vote("A"), 5, now=0.1)
        assert tick.stable_letter == "A"
        assert stabilizer.text == "BA"

    def test_low_confidence_votes_as_nothing(self, stabilizer):
        tick = self.push(stabilizer, vote("B", 0.4), 8)
        assert tick.stable_letter is None
        assert tick.mean_confidence == 0.0
        assert stabilizer.buffer_contents == [None] * 8

    def test_empty_results_dilute_majority(self, stabilizer):
        self.push(stabilizer, vote("B"), 4)
        self.push(stabilizer, NOTHING, 3)
        tick = stabilizer.update(vote("B"), 0.0)
        assert tick.stable_letter == "B"
        assert tick.mean_confidence == pytest.approx(5 * 0.88 / 8)

    def test_no_hand_clears_votes(self, stabilizer):
        self.push(stabilizer, vote("B"), 4)
        tick = stabilizer.hand_lost(0.1)
        assert not tick.hand_detected
        assert tick.mean_confidence == 0.0
        assert len(stabilizer.buffer) == 0

        tick = stabilizer.update(vote("B"), 0.2)
        assert tick.stable_letter is None
        assert stabilizer.text == ""

    def test_no_hand_keeps_text(self, stabilizer):
        self.push(stabilizer, vote("W"), 5)
        assert stabilizer.process_tick(None, 1.0).text == "W"

    def test_reset_session(self, stabilizer):
        self.push(stabilizer, vote("W"), 5)
        stabilizer.reset_session()
        assert stabilizer.text == ""
        assert stabilizer.last_emitted is None
        assert len(stabilizer.buffer) == 0

    def test_clear_text_allows_same_letter(self, stabilizer):
        self.push(stabilizer, vote("W"), 5, now=0.0)
        stabilizer.clear_text()
        tick = self.push(stabilizer, vote("W"), 5, now=0.1)
        assert tick.emitted == "W"
        assert stabilizer.text == "W"

    def test_commit_text(self, stabilizer):
        self.push(stabilizer, vote("V"), 5)
        assert stabilizer.commit_text() == "V"
        assert stabilizer.text == ""

    def test_process_tick_requires_classifier(self, stabilizer):
        with pytest.raises(RuntimeError):
            stabilizer.process_tick(letter_frame("B"), 0.0)

    def test_config_from_dict(self):
        config = StabilizerConfig.from_dict({"vote_size": 4, "vote_majority": 3})
        stabilizer = TemporalStabilizer(config=config)
        tick = self.push(stabilizer, vote("D"), 3)
        assert tick.emitted == "D"
        assert stabilizer.buffer.capacity == 4
        assert config.letter_hold_ms == 500

    def test_end_to_end_b(self):
        stabilizer = TemporalStabilizer(ClassifierArbiter(RuleClassifier()))
        frame = letter_frame("B")
        ticks = [stabilizer.process_tick(frame, i * 0.033) for i in range(6)]

        assert [t.emitted for t in ticks] == [None, None, None, None, "B", None]
        assert ticks[4].mean_confidence == pytest.approx(0.88)
        assert ticks[-1].text == "B"
