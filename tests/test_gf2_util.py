from __future__ import annotations

import pytest
import numpy as np
from galois import GF2

from crackspn.gf2_util import build_matrix, invert, is_invertible, multiply
from crackspn.types import SingularMatrixError


def random_invertible_diffusion(rng: np.random.Generator) -> np.ndarray:
    while True:
        diffusion = rng.integers(0, 2**32, size=32, dtype=np.uint64).astype(np.uint32)
        if is_invertible(build_matrix(diffusion)):
            return diffusion


def test_build_matrix():
    diffusion = np.zeros(32, dtype=np.uint32)
    diffusion[0] = 0b101
    diffusion[31] = 0x80000000
    matrix = build_matrix(diffusion)

    assert matrix.shape == (32, 32)
    assert type(matrix) is GF2
    assert matrix[0, 0] == 1 and matrix[0, 1] == 0 and matrix[0, 2] == 1
    assert matrix[31, 31] == 1
    assert np.sum(matrix.view(np.ndarray)) == 3


def test_multiply_selects_bytes():
    diffusion = np.zeros(32, dtype=np.uint32)
    diffusion[0] = 0b11
    diffusion[1] = 0b100
    matrix = build_matrix(diffusion)
    vector = np.arange(32, dtype=np.uint8) + 0x10

    res = multiply(matrix, vector)

    assert res[0] == 0x10 ^ 0x11
    assert res[1] == 0x12
    assert np.all(res[2:] == 0)


def test_multiply_batch():
    rng = np.random.default_rng(0x3a91)
    matrix = build_matrix(random_invertible_diffusion(rng))
    vectors = rng.integers(0, 256, size=(5, 32), dtype=np.uint8)

    batched = multiply(matrix, vectors)
    assert batched.shape == (5, 32)
    for vector, expected in zip(vectors, batched):
        assert np.all(multiply(matrix, vector) == expected)


def test_multiply_is_bitwise_matrix_product():
    rng = np.random.default_rng(1234)
    matrix = build_matrix(rng.integers(0, 2**32, size=32, dtype=np.uint64).astype(np.uint32))
    vector = rng.integers(0, 256, size=32, dtype=np.uint8)

    res = multiply(matrix, vector)
    for bit in range(8):
        bit_plane = GF2((vector >> bit) & 1)
        assert np.all(((res >> bit) & 1) == (matrix @ bit_plane).view(np.ndarray))


@pytest.mark.parametrize("seed", [1, 2, 3, 0xdead, 0xbeef])
def test_inverse(seed: int):
    rng = np.random.default_rng(seed)
    matrix = build_matrix(random_invertible_diffusion(rng))

    inverse = invert(matrix)

    assert np.all(matrix @ inverse == GF2.Identity(32))
    for _ in range(10):
        x = rng.integers(0, 256, size=32, dtype=np.uint8)
        assert np.all(multiply(inverse, multiply(matrix, x)) == x)


def test_inverse_needs_row_swaps():
    # anti-diagonal: every pivot is found by scanning downwards
    diffusion = np.array([1 << (31 - i) for i in range(32)], dtype=np.uint32)
    matrix = build_matrix(diffusion)

    inverse = invert(matrix)

    assert np.all(inverse == matrix)


def test_inverse_does_not_modify_input():
    rng = np.random.default_rng(77)
    matrix = build_matrix(random_invertible_diffusion(rng))
    copy = matrix.copy()
    invert(matrix)
    assert np.all(matrix == copy)


@pytest.mark.parametrize("diffusion", [
    np.zeros(32, dtype=np.uint32),
    np.array([1 << i for i in range(31)] + [0], dtype=np.uint32),
    np.array([1 << i for i in range(31)] + [0b11], dtype=np.uint32),
    np.full(32, 0xffffffff, dtype=np.uint32),
])
def test_singular(diffusion):
    matrix = build_matrix(diffusion)
    assert not is_invertible(matrix)
    with pytest.raises(SingularMatrixError) as excinfo:
        invert(matrix)
    assert excinfo.value.rank < 32


def test_non_square():
    with pytest.raises(ValueError):
        invert(GF2.Zeros((3, 4)))
