from __future__ import annotations

TYPE_CHECKING=False
if TYPE_CHECKING:
    from typing import Any

import numpy as np
import numpy.typing as npt

LookupIndex = tuple[np.ndarray, ...]

def build_lookup(confusion: npt.ArrayLike) -> LookupIndex:
    """
    Invert the substitution in the first half of `confusion`.

    Entry b lists every input c with confusion[c] == b in ascending order. An
    entry is empty if b is not an output of the substitution.
    """
    sbox = np.asarray(confusion, dtype=np.uint8)[:256]
    inputs = np.arange(256, dtype=np.uint8)

    lookup = []
    for out_val in range(256):
        bucket = inputs[sbox == out_val]
        bucket.flags.writeable = False
        lookup.append(bucket)
    return tuple(lookup)


def combination_table(confusion: npt.ArrayLike) -> np.ndarray[Any, np.dtype[np.uint8]]:
    """table[i, j] = confusion[i] ^ confusion[j + 256]"""
    confusion = np.asarray(confusion, dtype=np.uint8)
    table = confusion[:256, None] ^ confusion[None, 256:512]
    table.flags.writeable = False
    return table


def match_combination(confusion: npt.ArrayLike, target_byte: int, *, table: np.ndarray|None = None) -> np.ndarray[Any, np.dtype[np.uint8]]:
    """
    Reverse the combination stage for one output byte.

    Returns an (n, 2) array of all pairs (i, j) with
    confusion[i] ^ confusion[j + 256] == target_byte, ordered by i, then j.
    """
    target_byte = int(target_byte)
    if not 0 <= target_byte < 256:
        raise ValueError(f"target byte must be in range(256), got {target_byte}")
    if table is None:
        table = combination_table(confusion)

    i, j = np.nonzero(table == target_byte)
    res = np.stack([i, j], axis=-1).astype(np.uint8)
    res.flags.writeable = False
    return res
