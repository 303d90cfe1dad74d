"""
chosen-target preimage search
"""
from __future__ import annotations

TYPE_CHECKING=False
if TYPE_CHECKING:
    from typing import Any

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
import logging
import time

from tqdm import tqdm
import numpy as np
import numpy.typing as npt
from galois import GF2

from .candidates import ProductSpace, reverse_round
from .confusion_util import LookupIndex, build_lookup, combination_table, match_combination
from .gf2_util import build_matrix, invert
from .types import SearchBudgetExceeded, SearchMode
from .util import BLOCK_BYTES, Timer, as_block, as_confusion, as_diffusion, fmt_log2


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CrackTables:
    """everything derived from the cipher tables, computed once per search"""
    confusion: np.ndarray[Any, np.dtype[np.uint8]]
    diffusion: np.ndarray[Any, np.dtype[np.uint32]]
    matrix: GF2
    inverse: GF2
    lookup: LookupIndex
    combinations: np.ndarray[Any, np.dtype[np.uint8]]

    @classmethod
    def build(cls, diffusion: npt.ArrayLike, confusion: npt.ArrayLike) -> CrackTables:
        confusion = as_confusion(confusion)
        diffusion = as_diffusion(diffusion)

        matrix = build_matrix(diffusion)
        inverse = invert(matrix)
        matrix.flags.writeable = False
        inverse.flags.writeable = False

        lookup = build_lookup(confusion)
        unreachable = sum(len(bucket) == 0 for bucket in lookup)
        log.debug(f"substitution misses {unreachable} of 256 output values")

        return cls(confusion, diffusion, matrix, inverse, lookup, combination_table(confusion))


@dataclass
class SearchBudget:
    """
    Upper bounds for one search. `None` means unbounded.

    max_candidates counts every candidate vector produced, by any round reversal
    or, for zero rounds, the combination-stage preimage itself. max_branches
    counts assembled combination-stage preimages and timeout is in seconds.
    """
    max_candidates: int|None = None
    max_branches: int|None = None
    timeout: float|None = None


class _BudgetTracker:
    def __init__(self, budget: SearchBudget|None):
        self.budget = budget or SearchBudget()
        self.branches = 0
        self.candidates = 0
        self.deadline = None if self.budget.timeout is None else time.monotonic() + self.budget.timeout

    def _exceeded(self, reason: str):
        log.warning(f"search budget exceeded: {reason}")
        raise SearchBudgetExceeded(reason, branches=self.branches, candidates=self.candidates)

    def _check_deadline(self):
        if self.deadline is not None and time.monotonic() > self.deadline:
            self._exceeded(f"timeout of {self.budget.timeout} seconds")

    def on_branch(self):
        self.branches += 1
        if self.budget.max_branches is not None and self.branches > self.budget.max_branches:
            self._exceeded(f"more than {self.budget.max_branches} branches")
        self._check_deadline()

    def on_candidate(self, _candidate: np.ndarray):
        self.candidates += 1
        if self.budget.max_candidates is not None and self.candidates > self.budget.max_candidates:
            self._exceeded(f"more than {self.budget.max_candidates} candidates")
        self._check_deadline()


def stage3_matches(tables: CrackTables, target: npt.ArrayLike) -> list[np.ndarray]:
    """one array of (i, j) pairs for each of the first 16 target bytes"""
    target = np.asarray(target, dtype=np.uint8)
    return [match_combination(tables.confusion, c, table=tables.combinations) for c in target[:BLOCK_BYTES // 2].tolist()]


def branch_space(matches: list[np.ndarray]) -> ProductSpace:
    """
    Every full vector that yields the target through the combination stage:
    pair k of a combination occupies positions 2k and 2k + 1.
    """
    return ProductSpace(matches)


def reverse_rounds(tables: CrackTables, branch: np.ndarray, rounds: int, *, tracker: _BudgetTracker|None=None) -> Iterable[np.ndarray]:
    """lazy family of inputs that reach `branch` after `rounds` rounds"""
    on_candidate = tracker.on_candidate if tracker is not None else None
    family: Iterable[np.ndarray] = [branch]
    if rounds == 0 and on_candidate is not None:
        # the branch itself is the only candidate
        on_candidate(branch)
    for _ in range(rounds):
        family = reverse_round(tables.inverse, tables.lookup, family, on_candidate=on_candidate)
    return family


def iter_families(tables: CrackTables, target: npt.ArrayLike, rounds: int, *, budget: SearchBudget|None=None, progress: bool=False) -> Iterator[tuple[np.ndarray, list[np.ndarray]]]:
    """
    Yield (branch, family) for every combination-stage branch whose round
    reversal is non-empty, in enumeration order.
    """
    target = as_block(target)
    if isinstance(rounds, bool) or not isinstance(rounds, (int, np.integer)) or rounds < 0:
        raise ValueError(f"rounds must be a non-negative integer, got {rounds!r}")
    rounds = int(rounds)
    tracker = _BudgetTracker(budget)

    matches = stage3_matches(tables, target)
    for k, m in enumerate(matches):
        if len(m) == 0:
            log.info(f"no pair combines to target byte {k} ({int(target[k]):#04x}) -> no preimage")
            return

    branches = branch_space(matches)
    num_branches = branches.size()
    log.info(f"combination stage leaves {fmt_log2(num_branches)} candidate vectors")

    # tqdm cannot display totals beyond 64 bits
    total = num_branches if num_branches < 2**63 else None
    with tqdm(branches, total=total, disable=not progress, unit='branch') as pbar:
        for branch in pbar:
            tracker.on_branch()
            family_iter = iter(reverse_rounds(tables, branch, rounds, tracker=tracker))
            first = next(family_iter, None)
            if first is None:
                continue
            family = [first, *family_iter]
            log.debug(f"branch {tracker.branches} has {len(family)} preimages after {rounds} rounds")
            yield branch, family


def crack(target: npt.ArrayLike, diffusion: npt.ArrayLike, confusion: npt.ArrayLike, rounds: int, *, mode: SearchMode = SearchMode.first_family, budget: SearchBudget|None=None, progress: bool=False) -> list[np.ndarray]:
    """
    Find inputs that encrypt to `target` in `rounds` rounds.

    In SearchMode.first_family the search stops at the first combination-stage
    branch with a non-empty preimage family and returns only that family. In
    SearchMode.all_families the families of all branches are concatenated.
    Returns an empty list if there is no preimage.

    Raises SingularMatrixError if the diffusion matrix is not invertible and
    SearchBudgetExceeded if `budget` is exhausted.
    """
    if not isinstance(mode, SearchMode):
        raise ValueError(f'unknown mode {mode}')

    with Timer() as timer:
        tables = CrackTables.build(diffusion, confusion)
    log.debug(f"built matrix inverse and lookup in {timer}")

    result: list[np.ndarray] = []
    with Timer() as timer:
        for _branch, family in iter_families(tables, target, rounds, budget=budget, progress=progress):
            result.extend(family)
            if mode is SearchMode.first_family:
                break
    log.info(f"found {len(result)} preimages for {rounds} rounds in {timer}")
    return result
