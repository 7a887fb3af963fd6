"""
Tests for the Training Sample Store
===================================
"""

import json

import numpy as np
import pytest

from fingerspell.core.errors import StorePersistenceFailure
from fingerspell.data.sample_store import SampleStore, SampleStoreConfig
from fingerspell.recognition.features import normalize

from hand_shapes import letter_frame, transform


def memory_store(**kwargs):
    return SampleStore(SampleStoreConfig(data_dir=None, **kwargs))


def add_many(store, letter, count):
    frame = letter_frame(letter)
    for i in range(count):
        assert store.add_sample(letter, transform(frame, scale=1.0 + 0.1 * i, offset=(i, 0, 0)))


class TestSampleStore:
    """Test suite for sample bookkeeping and readiness."""

    def test_add_sample_normalizes(self):
        store = memory_store()
        frame = transform(letter_frame("B"), scale=0.3, offset=(0.2, 0.1, 0.0))
        assert store.add_sample("b", frame)

        letters, matrix = store.snapshot()
        assert letters == ("B",)
        assert matrix.shape == (1, 63)
        np.testing.assert_allclose(matrix[0], normalize(letter_frame("B")), atol=1e-9)

    @pytest.mark.parametrize("letter", ["", "AB", "1", None, "é"])
    def test_rejects_invalid_letter(self, letter):
        store = memory_store()
        assert not store.add_sample(letter, letter_frame("A"))
        assert len(store) == 0

    def test_rejects_bad_frames(self):
        store = memory_store()
        assert not store.add_sample("A", np.zeros((10, 3)))
        assert not store.add_sample("A", np.zeros((21, 3)))
        assert len(store) == 0

    def test_sample_counts(self):
        store = memory_store()
        add_many(store, "A", 3)
        add_many(store, "B", 2)
        assert store.get_sample_counts() == {"A": 3, "B": 2}
        assert store.letters == ["A", "B"]
        assert [s.letter for s in store.samples()] == ["A", "A", "A", "B", "B"]

    def test_readiness_thresholds(self):
        store = memory_store()
        add_many(store, "A", 5)
        assert not store.is_trained()       # one letter, 5 total
        add_many(store, "B", 4)
        assert not store.is_trained()       # 9 total
        add_many(store, "B", 1)
        assert store.is_trained()           # 10 total, two letters with 5

    def test_single_letter_never_ready(self):
        store = memory_store()
        add_many(store, "A", 20)
        assert not store.is_trained()

    def test_readiness_is_monotonic(self):
        store = memory_store()
        add_many(store, "A", 5)
        add_many(store, "B", 5)
        assert store.is_trained()
        for letter in "CDWAB":
            add_many(store, letter, 1)
            assert store.is_trained()

    def test_clear(self):
        store = memory_store()
        add_many(store, "A", 5)
        add_many(store, "B", 5)
        store.clear_samples()
        assert len(store) == 0
        assert store.get_sample_counts() == {}
        assert not store.is_trained()

    def test_snapshot_is_not_mutated_by_later_adds(self):
        store = memory_store()
        add_many(store, "A", 2)
        letters, matrix = store.snapshot()
        add_many(store, "B", 2)
        assert letters == ("A", "A")
        assert matrix.shape == (2, 63)


class TestSampleStorePersistence:
    """Test suite for the JSON file backing."""

    @pytest.fixture
    def config(self, tmp_path):
        return SampleStoreConfig(data_dir=str(tmp_path / "samples"))

    def test_round_trip(self, config):
        store = SampleStore(config)
        add_many(store, "A", 3)
        add_many(store, "L", 2)
        assert store.is_durable
        assert store.path.exists()
        assert not store.path.with_name(store.path.name + ".tmp").exists()

        reloaded = SampleStore(config)
        assert reloaded.get_sample_counts() == {"A": 3, "L": 2}
        np.testing.assert_allclose(reloaded.snapshot()[1], store.snapshot()[1])

    def test_file_format(self, config):
        store = SampleStore(config)
        add_many(store, "W", 1)
        with open(store.path) as f:
            records = json.load(f)
        assert records[0]["letter"] == "W"
        assert len(records[0]["vector"]) == 63
        assert store.path.name == "fingerspell_asl_trained.json"

    def test_clear_is_persisted(self, config):
        store = SampleStore(config)
        add_many(store, "A", 3)
        store.clear_samples()
        assert len(SampleStore(config)) == 0

    def test_missing_file_loads_empty(self, config):
        store = SampleStore(config)
        assert len(store) == 0
        assert store.last_error is None

    def test_malformed_records_are_skipped(self, config):
        config.path.parent.mkdir(parents=True)
        vector = [0.0] * 63
        with open(config.path, "w") as f:
            json.dump([
                {"letter": "a", "vector": vector},
                {"letter": "AB", "vector": vector},
                {"vector": vector},
                {"letter": "B", "vector": [1.0, 2.0]},
                "garbage",
                {"letter": "C", "vector": vector},
            ], f)

        store = SampleStore(config)
        assert store.get_sample_counts() == {"A": 1, "C": 1}

    def test_corrupt_file_loads_empty(self, config):
        config.path.parent.mkdir(parents=True)
        config.path.write_text("{not json")
        store = SampleStore(config)
        assert len(store) == 0
        assert isinstance(store.last_error, StorePersistenceFailure)

    def test_write_failure_keeps_sample_in_memory(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file where the data directory should be")
        store = SampleStore(SampleStoreConfig(data_dir=str(blocker)))

        assert store.add_sample("A", letter_frame("A"))
        assert store.get_sample_counts() == {"A": 1}
        assert isinstance(store.last_error, StorePersistenceFailure)
        assert not store.is_durable

    def test_storage_key(self, tmp_path):
        a = SampleStore(SampleStoreConfig(data_dir=str(tmp_path), storage_key="alice"))
        b = SampleStore(SampleStoreConfig(data_dir=str(tmp_path), storage_key="bob"))
        add_many(a, "A", 2)
        assert len(b) == 0
        assert (tmp_path / "alice.json").exists()
