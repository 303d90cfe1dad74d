from __future__ import annotations

TYPE_CHECKING=False
if TYPE_CHECKING:
    from typing import Any, Self

from pathlib import Path
import logging
import re

import numpy as np
import numpy.typing as npt

from .util import BLOCK_BYTES, CONFUSION_SIZE, DIFFUSION_WORDS, as_block, as_confusion, as_diffusion


log = logging.getLogger(__name__)


class CipherTables():
    confusion: np.ndarray[Any, np.dtype[np.uint8]]
    diffusion: np.ndarray[Any, np.dtype[np.uint32]]

    file_path: Path|None

    @classmethod
    def load(cls, tables_path: Path) -> Self:
        tables_path = Path(tables_path)
        if tables_path.suffix == '.npz':
            return cls.load_npz(tables_path)
        return cls.load_txt(tables_path)

    @classmethod
    def load_txt(cls, tables_path: Path) -> Self:
        """
        Read hex numbers separated by whitespace or commas; '#' starts a
        comment. The first 512 numbers are the confusion table, the following
        32 the diffusion words.
        """
        tokens = []
        with open(tables_path, 'r') as f:
            for line in f:
                line = line.partition('#')[0].strip()
                if not line:
                    continue
                tokens.extend(t for t in re.split(r'[\s,]+', line) if t)

        expected = CONFUSION_SIZE + DIFFUSION_WORDS
        if len(tokens) != expected:
            log.error(f'expected {expected} numbers in {tables_path}, got {len(tokens)}')
            raise ValueError(f'expected {expected} numbers in {tables_path}, got {len(tokens)}')

        values = [int(t, 16) for t in tokens]
        return cls(values[:CONFUSION_SIZE], values[CONFUSION_SIZE:], file_path=Path(tables_path))

    @classmethod
    def load_npz(cls, tables_path: Path) -> Self:
        with np.load(tables_path) as f:
            missing = [name for name in ('confusion', 'diffusion') if name not in f.files]
            if missing:
                log.error(f'{tables_path} lacks array(s) {", ".join(missing)}')
                raise ValueError(f'{tables_path} lacks array(s) {", ".join(missing)}')
            confusion = f['confusion']
            diffusion = f['diffusion']
        return cls(confusion, diffusion, file_path=Path(tables_path))

    def __init__(self, confusion: npt.ArrayLike, diffusion: npt.ArrayLike, file_path: Path|None=None):
        self.confusion = as_confusion(confusion)
        self.diffusion = as_diffusion(diffusion)
        self.file_path = file_path

    def save_npz(self, tables_path: Path):
        np.savez(tables_path, confusion=self.confusion, diffusion=self.diffusion)

    def __repr__(self):
        return f"{self.__class__.__name__}(file_path={self.file_path!r})"


def parse_block(text: str) -> np.ndarray[Any, np.dtype[np.uint8]]:
    """parse a block given as 64 hex characters, optionally prefixed with 0x"""
    text = text.strip().lower()
    if text.startswith('0x'):
        text = text[2:]
    if len(text) != 2 * BLOCK_BYTES:
        raise ValueError(f"expected {2 * BLOCK_BYTES} hex characters, got {len(text)}")
    try:
        raw = bytes.fromhex(text)
    except ValueError as e:
        raise ValueError(f"invalid hex block {text!r}") from e
    return as_block(raw)
