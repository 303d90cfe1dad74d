"""
lazy candidate sets for undoing diffusion and substitution
"""
from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from itertools import product
from math import prod

import numpy as np
import numpy.typing as npt
from galois import GF2

from .gf2_util import multiply
from .confusion_util import LookupIndex


class ProductSpace:
    """
    All vectors that pick one choice per slot from `choices`.

    A slot holds either single values (shape (n,)) or rows of values (shape
    (n, w)); picked rows are laid out consecutively. Elements are generated on
    demand, the first slot varies slowest. Iterating twice yields the same
    sequence.
    """
    def __init__(self, choices: Sequence[npt.ArrayLike]):
        self.choices = tuple(np.asarray(c, dtype=np.uint8) for c in choices)

    def size(self) -> int:
        # may exceed sys.maxsize, hence no __len__
        return prod(len(c) for c in self.choices)

    def is_empty(self) -> bool:
        return any(len(c) == 0 for c in self.choices)

    def __iter__(self) -> Iterator[np.ndarray]:
        for combination in product(*(c.tolist() for c in self.choices)):
            yield np.array(combination, dtype=np.uint8).reshape(-1)

    def __repr__(self):
        sizes = [len(c) for c in self.choices]
        return f"{self.__class__.__name__}(positions={len(sizes)}, size={self.size()})"


class ReversedRound:
    """
    Predecessors of `candidates` under one round (substitution, then diffusion).

    Candidates whose pre-diffusion state contains a byte outside the image of
    the substitution have no predecessor and are dropped. Iterating again
    re-iterates `candidates`, so nested rounds stay restartable as long as the
    innermost candidates are.
    """
    def __init__(self, inverse: GF2, lookup: LookupIndex, candidates: Iterable[np.ndarray], *, on_candidate: Callable[[np.ndarray], None]|None=None):
        self.inverse = inverse
        self.lookup = lookup
        self.candidates = candidates
        self.on_candidate = on_candidate

    def predecessors(self, candidate: npt.ArrayLike) -> ProductSpace|None:
        preimage = multiply(self.inverse, candidate)
        buckets = [self.lookup[b] for b in preimage.tolist()]
        if any(len(bucket) == 0 for bucket in buckets):
            return None
        return ProductSpace(buckets)

    def __iter__(self) -> Iterator[np.ndarray]:
        for candidate in self.candidates:
            space = self.predecessors(candidate)
            if space is None:
                continue
            for predecessor in space:
                if self.on_candidate is not None:
                    self.on_candidate(predecessor)
                yield predecessor


def reverse_round(inverse: GF2, lookup: LookupIndex, candidates: Iterable[np.ndarray], *, on_candidate: Callable[[np.ndarray], None]|None=None) -> ReversedRound:
    return ReversedRound(inverse, lookup, candidates, on_candidate=on_candidate)
