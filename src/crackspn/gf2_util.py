"""
linear algebra over GF(2) for the diffusion layer
"""
from __future__ import annotations

TYPE_CHECKING=False
if TYPE_CHECKING:
    from typing import Any

import logging

import numpy as np
import numpy.typing as npt
from galois import GF2

from .types import SingularMatrixError


log = logging.getLogger(__name__)

def build_matrix(diffusion: npt.ArrayLike) -> GF2:
    """
    Unpack the diffusion words into a square matrix where row i, column j
    holds bit j of word i.
    """
    words = np.array(diffusion, dtype=np.uint32)
    if words.ndim != 1:
        raise ValueError("diffusion table must be one-dimensional")
    bits = (words[:, None] >> np.arange(len(words), dtype=np.uint32)) & 1
    return GF2(bits.astype(np.uint8))


def multiply(matrix: GF2, vector: npt.ArrayLike) -> np.ndarray[Any, np.dtype[np.uint8]]:
    """
    Matrix-vector product where addition is XOR over whole bytes.

    The matrix only selects which bytes of `vector` are XORed into each output
    byte, i.e., output[i] = XOR(vector[j] for j where matrix[i, j] == 1).
    `vector` may also be a batch of vectors with shape (..., n).
    """
    mask = matrix.view(np.ndarray).astype(bool)
    vector = np.asarray(vector, dtype=np.uint8)
    if vector.shape[-1] != mask.shape[1]:
        raise ValueError(f"vector of length {vector.shape[-1]} does not match {mask.shape[0]}x{mask.shape[1]} matrix")

    selected = np.where(mask, vector[..., None, :], np.uint8(0)).astype(np.uint8)
    return np.bitwise_xor.reduce(selected, axis=-1)


def is_invertible(matrix: GF2) -> bool:
    return matrix.ndim == 2 and matrix.shape[0] == matrix.shape[1] and int(np.linalg.matrix_rank(matrix)) == matrix.shape[0]


def invert(matrix: GF2) -> GF2:
    """
    Invert `matrix` with Gauss-Jordan elimination, mirroring every row
    operation onto the identity.

    Raises SingularMatrixError if the matrix does not have full rank.
    """
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError(f"matrix must be square, got shape {matrix.shape}")
    size = matrix.shape[0]

    rank = int(np.linalg.matrix_rank(matrix))
    if rank != size:
        raise SingularMatrixError(rank, size)

    current = matrix.copy()
    res = GF2.Identity(size)
    for i in range(size):
        if current[i, i] == 0:
            # scan down for a row with a 1 in column i
            candidates = np.flatnonzero(current[i + 1:, i].view(np.ndarray))
            assert len(candidates) > 0, f"no pivot for column {i} in full rank matrix"
            j = i + 1 + int(candidates[0])
            current[[i, j]] = current[[j, i]]
            res[[i, j]] = res[[j, i]]

        # eliminate column i above and below the pivot
        for j in np.flatnonzero(current[:, i].view(np.ndarray)):
            if j == i:
                continue
            current[j] += current[i]
            res[j] += res[i]

    assert np.all(current == GF2.Identity(size))
    log.debug(f"inverted {size}x{size} matrix")
    return res
