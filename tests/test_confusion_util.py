from __future__ import annotations

import pytest
import numpy as np

from crackspn.confusion_util import build_lookup, combination_table, match_combination


def random_confusion(seed: int) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=512, dtype=np.uint8)


@pytest.mark.parametrize("seed", [0, 1, 42])
def test_lookup_complete(seed: int):
    confusion = random_confusion(seed)
    lookup = build_lookup(confusion)

    assert len(lookup) == 256
    assert sum(len(bucket) for bucket in lookup) == 256
    for c in range(256):
        assert c in lookup[confusion[c]]
    for out_val, bucket in enumerate(lookup):
        assert np.all(np.diff(bucket.astype(int)) > 0)
        assert np.all(confusion[bucket] == out_val)


def test_lookup_ignores_second_half():
    confusion = np.zeros(512, dtype=np.uint8)
    confusion[:256] = np.arange(256)
    confusion[256:] = 7
    lookup = build_lookup(confusion)

    assert all(len(bucket) == 1 for bucket in lookup)
    assert lookup[7].tolist() == [7]


def test_lookup_unreachable_and_colliding():
    confusion = np.zeros(512, dtype=np.uint8)
    confusion[:256] = np.arange(256)
    confusion[1] = 0
    lookup = build_lookup(confusion)

    assert lookup[0].tolist() == [0, 1]
    assert len(lookup[1]) == 0


def test_lookup_read_only():
    lookup = build_lookup(random_confusion(5))
    bucket = next(b for b in lookup if len(b) > 0)
    with pytest.raises(ValueError):
        bucket[0] = 0


@pytest.mark.parametrize("seed, target_byte", [(3, 0x00), (3, 0x5a), (11, 0xff), (12, 0x80)])
def test_match_exhaustive(seed: int, target_byte: int):
    confusion = random_confusion(seed)

    expected = [(i, j) for i in range(256) for j in range(256) if confusion[i] ^ confusion[j + 256] == target_byte]
    matches = match_combination(confusion, target_byte)

    assert matches.shape == (len(expected), 2)
    assert [tuple(m) for m in matches.tolist()] == expected


def test_match_with_precomputed_table():
    confusion = random_confusion(8)
    table = combination_table(confusion)
    assert table.shape == (256, 256)
    assert table[3, 4] == confusion[3] ^ confusion[260]
    for target_byte in (0, 17, 200):
        assert np.all(match_combination(confusion, target_byte, table=table) == match_combination(confusion, target_byte))


def test_match_identity():
    confusion = np.zeros(512, dtype=np.uint8)
    confusion[:256] = np.arange(256)
    matches = match_combination(confusion, 0)

    assert len(matches) == 256
    assert np.all(matches[:, 0] == 0)
    assert np.all(matches[:, 1] == np.arange(256))


def test_match_empty():
    confusion = np.zeros(512, dtype=np.uint8)
    assert len(match_combination(confusion, 1)) == 0
    assert match_combination(confusion, 1).shape == (0, 2)


def test_match_invalid_byte():
    with pytest.raises(ValueError):
        match_combination(np.zeros(512, dtype=np.uint8), 256)
