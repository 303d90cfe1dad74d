from __future__ import annotations

TYPE_CHECKING=False
if TYPE_CHECKING:
    from typing import Any

from math import log2
import time

import numpy as np
import numpy.typing as npt

BLOCK_BYTES = 32
CONFUSION_SIZE = 512
DIFFUSION_WORDS = 32

def fmt_log2(number: float, width: int=0) -> str:
    if number == 0:
        num_str = "0"
    else:
        num_str = f"2^{log2(number):.2f}"

    return num_str.rjust(width)


class Timer:
    start: float
    end: float
    def __enter__(self) -> Timer:
        self.start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.end = time.perf_counter()

    def __str__(self) -> str:
        return f'{self.end - self.start:.3f} seconds'

    def elapsed(self) -> float:
        return self.end - self.start


def _as_table(values: npt.ArrayLike, length: int, bits: int, name: str) -> np.ndarray:
    arr = np.array(values)
    if arr.shape != (length,):
        raise ValueError(f"{name} must contain exactly {length} values, got shape {arr.shape}")
    if arr.size and not np.issubdtype(arr.dtype, np.integer):
        raise ValueError(f"{name} must contain integers, got dtype {arr.dtype}")
    wide = arr.astype(np.int64)
    if np.any(wide < 0) or np.any(wide >= (1 << bits)):
        raise ValueError(f"{name} values must fit into {bits} unsigned bits")
    res = arr.astype(np.uint8 if bits == 8 else np.uint32)
    res.flags.writeable = False
    return res

def as_confusion(values: npt.ArrayLike) -> np.ndarray[Any, np.dtype[np.uint8]]:
    return _as_table(values, CONFUSION_SIZE, 8, 'confusion table')

def as_diffusion(values: npt.ArrayLike) -> np.ndarray[Any, np.dtype[np.uint32]]:
    return _as_table(values, DIFFUSION_WORDS, 32, 'diffusion table')

def as_block(values: npt.ArrayLike|bytes) -> np.ndarray[Any, np.dtype[np.uint8]]:
    if isinstance(values, (bytes, bytearray)):
        values = np.frombuffer(values, dtype=np.uint8)
    return _as_table(values, BLOCK_BYTES, 8, 'block')

def fmt_block(block: npt.ArrayLike) -> str:
    return np.asarray(block, dtype=np.uint8).tobytes().hex()
