from __future__ import annotations

from enum import Enum, unique

@unique
class SearchMode(Enum):
    first_family = 'first-family'
    all_families = 'all-families'


class SingularMatrixError(ValueError):
    def __init__(self, rank: int, size: int):
        super().__init__(f"diffusion matrix ({size}x{size}) must be invertible (has rank {rank})")
        self.rank = rank
        self.size = size


class SearchBudgetExceeded(Exception):
    def __init__(self, reason: str, *, branches: int, candidates: int):
        super().__init__(f"{reason} (after {branches} branches, {candidates} candidates)")
        self.reason = reason
        self.branches = branches
        self.candidates = candidates
