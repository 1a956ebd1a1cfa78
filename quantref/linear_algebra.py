"""
Linear Algebra Module
=====================
Dense matrix and vector utilities used across the library: products,
Gaussian-elimination inversion with zero-diagonal regularization, rank,
Cholesky-Banachiewicz factorization, Gram-Schmidt orthogonalization and
QR decomposition.

Conventions:
    Matrix-valued routines return ``None`` when the input is empty, has
    inconsistent dimensions, contains non-finite entries, or is singular.
    Scalar-valued routines raise ``ValueError`` on invalid input.
"""

import numpy as np
import structlog
from dataclasses import dataclass
from typing import Optional

from quantref.checks import is_valid

logger = structlog.get_logger(__name__)


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────
NON_TRIANGULAR: int = 0
LOWER_TRIANGULAR: int = 1
UPPER_TRIANGULAR: int = 2
LOWER_AND_UPPER_TRIANGULAR: int = 3

GAUSSIAN_ELIMINATION: str = "GaussianElimination"
DEFAULT_RANK_TOLERANCE: float = 1e-10


def _as_matrix(a) -> Optional[np.ndarray]:
    if a is None:
        return None
    try:
        arr = np.array(a, dtype=float)
    except (TypeError, ValueError):
        return None
    if arr.ndim != 2 or arr.size == 0:
        return None
    return arr


def _as_square(a) -> Optional[np.ndarray]:
    arr = _as_matrix(a)
    if arr is None or arr.shape[0] != arr.shape[1]:
        return None
    return arr


def _as_vector(v) -> np.ndarray:
    if v is None:
        raise ValueError("Vector must not be None")
    arr = np.array(v, dtype=float)
    if arr.ndim != 1 or arr.size == 0:
        raise ValueError(f"Expected a non-empty 1-D vector, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ValueError("Vector entries must be finite")
    return arr


# ─────────────────────────────────────────────────────────────
# Products and Shapes
# ─────────────────────────────────────────────────────────────

def product(a, b) -> Optional[np.ndarray]:
    """
    Multiply matrices and vectors.

    Supported shapes:
        matrix (m x n) · vector (n,)      -> vector (m,)
        vector (n,)    · matrix (n x p)   -> vector (p,)
        matrix (m x n) · matrix (n x p)   -> matrix (m x p)

    Returns
    -------
    np.ndarray or None
        None on empty input, dimension mismatch or non-finite entries.
    """
    if a is None or b is None:
        return None

    a_arr = np.array(a, dtype=float)
    b_arr = np.array(b, dtype=float)

    if a_arr.size == 0 or b_arr.size == 0:
        return None
    if not (is_valid(a_arr) and is_valid(b_arr)):
        return None
    if a_arr.ndim not in (1, 2) or b_arr.ndim not in (1, 2):
        return None
    if a_arr.ndim == 1 and b_arr.ndim == 1:
        return None

    inner_a = a_arr.shape[-1]
    inner_b = b_arr.shape[0]
    if inner_a != inner_b:
        return None

    return a_arr @ b_arr


def make_square_diagonal(v) -> Optional[np.ndarray]:
    """Square diagonal matrix with ``v`` on the diagonal."""
    if v is None:
        return None
    arr = np.array(v, dtype=float)
    if arr.ndim != 1 or arr.size == 0:
        return None
    return np.diag(arr)


def transpose(a) -> Optional[np.ndarray]:
    arr = _as_matrix(a)
    return None if arr is None else arr.T.copy()


def scale_1d(v, factor: float) -> Optional[np.ndarray]:
    if v is None or not is_valid(factor):
        return None
    arr = np.array(v, dtype=float)
    if arr.ndim != 1 or arr.size == 0:
        return None
    return arr * factor


def scale_2d(a, factor: float) -> Optional[np.ndarray]:
    arr = _as_matrix(a)
    if arr is None or not is_valid(factor):
        return None
    return arr * factor


def is_diagonal(a) -> bool:
    arr = _as_matrix(a)
    if arr is None:
        return False
    off_diagonal = ~np.eye(arr.shape[0], arr.shape[1], dtype=bool)
    return bool(np.all(arr[off_diagonal] == 0.0))


def triangular_type(a, floor: float = 0.0) -> int:
    """
    Classify a square matrix by its zero pattern.

    Entries whose magnitude is at or below ``floor`` count as zero.

    Returns
    -------
    int
        One of NON_TRIANGULAR, LOWER_TRIANGULAR, UPPER_TRIANGULAR,
        LOWER_AND_UPPER_TRIANGULAR.
    """
    arr = _as_square(a)
    if arr is None or not is_valid(floor) or floor < 0.0 or arr.shape[0] <= 1:
        return NON_TRIANGULAR

    above_zero = bool(np.all(np.abs(np.triu(arr, k=1)) <= floor))
    below_zero = bool(np.all(np.abs(np.tril(arr, k=-1)) <= floor))

    if above_zero and below_zero:
        return LOWER_AND_UPPER_TRIANGULAR
    if above_zero:
        return LOWER_TRIANGULAR
    if below_zero:
        return UPPER_TRIANGULAR
    return NON_TRIANGULAR


# ─────────────────────────────────────────────────────────────
# Inversion
# ─────────────────────────────────────────────────────────────

@dataclass
class MatrixComplementTransform:
    """
    Source matrix and its complement, transformed together by row operations.

    Starting from ``(A, I)`` and applying identical row operations to both
    leaves ``(E A, E)``; once the source reaches the identity the complement
    holds ``A^{-1}``.
    """

    source: np.ndarray
    complement: np.ndarray

    def __post_init__(self):
        self.source = np.array(self.source, dtype=float)
        self.complement = np.array(self.complement, dtype=float)
        if (
            self.source.ndim != 2
            or self.source.shape[0] == 0
            or self.source.shape[0] != self.source.shape[1]
            or self.source.shape != self.complement.shape
        ):
            raise ValueError("MatrixComplementTransform requires matching square matrices")

    @property
    def size(self) -> int:
        return self.source.shape[0]

    def swap_rows(self, i: int, j: int) -> None:
        self.source[[i, j]] = self.source[[j, i]]
        self.complement[[i, j]] = self.complement[[j, i]]

    def add_row(self, target: int, pivot: int) -> None:
        self.source[target] += self.source[pivot]
        self.complement[target] += self.complement[pivot]


def regularize_using_row_swap(mct: MatrixComplementTransform) -> bool:
    """
    Remove zero diagonal entries by swapping rows.

    A swap partner is preferred where both crossing entries are non-zero so
    the swap cannot zero the partner's own diagonal.

    Returns
    -------
    bool
        False if some diagonal cannot be made non-zero.
    """
    if mct is None:
        return False

    size = mct.size
    source = mct.source

    for diagonal in range(size):
        if source[diagonal, diagonal] != 0.0:
            continue

        swap_row = size - 1
        while swap_row >= 0 and (
            source[swap_row, diagonal] == 0.0 or source[diagonal, swap_row] == 0.0
        ):
            swap_row -= 1

        if swap_row < 0:
            swap_row = 0
            while swap_row < size and source[swap_row, diagonal] == 0.0:
                swap_row += 1
            if swap_row >= size:
                return False

        mct.swap_rows(diagonal, swap_row)

    return True


def regularize_using_row_addition(mct: MatrixComplementTransform) -> bool:
    """Remove zero diagonal entries by adding a row with a non-zero entry in that column."""
    if mct is None:
        return False

    size = mct.size
    source = mct.source

    for diagonal in range(size):
        if source[diagonal, diagonal] != 0.0:
            continue

        pivot_row = size - 1
        while pivot_row >= 0 and source[pivot_row, diagonal] == 0.0:
            pivot_row -= 1
        if pivot_row < 0:
            return False

        mct.add_row(diagonal, pivot_row)

    return True


def pivot_diagonal(a) -> Optional[MatrixComplementTransform]:
    """Copy ``a`` with an identity complement and regularize its diagonal by row swaps."""
    arr = _as_square(a)
    if arr is None:
        return None

    mct = MatrixComplementTransform(arr.copy(), np.eye(arr.shape[0]))
    return mct if regularize_using_row_swap(mct) else None


def invert_using_gaussian_elimination(a) -> Optional[np.ndarray]:
    """
    Invert a square matrix by Gauss-Jordan elimination.

    Algorithm:
        1. Pivot the diagonal via row swaps (complement starts at I)
        2. For each diagonal, swap in a lower row if the pivot vanished,
           then eliminate the column from every other row
        3. Scale each row by its diagonal entry

    Returns
    -------
    np.ndarray or None
        The inverse, or None if the matrix is singular.
    """
    mct = pivot_diagonal(a)
    if mct is None:
        return None

    source = mct.source
    size = mct.size
    scale = np.max(np.abs(source)) if source.size else 0.0
    tolerance = scale * 1e-14

    for diagonal in range(size):
        if abs(source[diagonal, diagonal]) <= tolerance:
            candidates = np.nonzero(np.abs(source[diagonal + 1:, diagonal]) > tolerance)[0]
            if candidates.size == 0:
                logger.warning("invert_using_gaussian_elimination: singular matrix", size=size)
                return None
            mct.swap_rows(diagonal, diagonal + 1 + int(candidates[0]))

        pivot = source[diagonal, diagonal]
        for row in range(size):
            if row == diagonal or source[row, diagonal] == 0.0:
                continue
            ratio = source[row, diagonal] / pivot
            source[row] -= ratio * source[diagonal]
            mct.complement[row] -= ratio * mct.complement[diagonal]

    diagonal_entries = np.diag(source).copy()
    if np.any(np.abs(diagonal_entries) <= tolerance):
        logger.warning("invert_using_gaussian_elimination: singular matrix", size=size)
        return None

    mct.source = source / diagonal_entries[:, None]
    mct.complement = mct.complement / diagonal_entries[:, None]
    return mct.complement


def invert(a, method: str = GAUSSIAN_ELIMINATION) -> Optional[np.ndarray]:
    """
    Invert a square matrix with the requested method.

    Zero diagonal entries are first removed by row addition; the row
    operations are recorded in a jack matrix ``E`` so that
    ``A^{-1} = (E A)^{-1} E``.

    Parameters
    ----------
    a : array-like
        Square matrix.
    method : str
        Only "GaussianElimination" (case-insensitive) is supported; an
        empty or None method selects it.

    Returns
    -------
    np.ndarray or None
        The inverse, or None on invalid/singular input.
    """
    arr = _as_square(a)
    if arr is None or not is_valid(arr):
        return None

    if method and method.lower() != GAUSSIAN_ELIMINATION.lower():
        logger.warning("invert: unsupported method", method=method)
        return None

    mct = MatrixComplementTransform(arr.copy(), np.eye(arr.shape[0]))
    if not regularize_using_row_addition(mct):
        return None

    regularized_inverse = invert_using_gaussian_elimination(mct.source)
    if regularized_inverse is None:
        return None

    return regularized_inverse @ mct.complement


def invert_2d_cramer(a) -> Optional[np.ndarray]:
    """Invert a 2 x 2 matrix using Cramer's rule."""
    arr = _as_matrix(a)
    if arr is None or arr.shape != (2, 2) or not is_valid(arr):
        return None

    determinant = arr[0, 0] * arr[1, 1] - arr[0, 1] * arr[1, 0]
    if determinant == 0.0:
        return None

    return np.array([
        [arr[1, 1], -arr[0, 1]],
        [-arr[1, 0], arr[0, 0]],
    ]) / determinant


def rank(a, tolerance: float = DEFAULT_RANK_TOLERANCE) -> int:
    """
    Rank of a matrix by row reduction.

    Raises
    ------
    ValueError
        If any entry is non-finite.
    """
    if a is None:
        return 0
    arr = np.array(a, dtype=float)
    if arr.size == 0:
        return 0
    if arr.ndim == 1:
        arr = arr[None, :]
    if not is_valid(arr):
        raise ValueError("rank: matrix entries must be finite")

    if arr.shape[0] < arr.shape[1]:
        arr = arr.T.copy()

    rows, cols = arr.shape
    threshold = tolerance * max(1.0, float(np.max(np.abs(arr))))
    pivot_row = 0

    for col in range(cols):
        if pivot_row >= rows:
            break
        best = pivot_row + int(np.argmax(np.abs(arr[pivot_row:, col])))
        if abs(arr[best, col]) <= threshold:
            continue
        arr[[pivot_row, best]] = arr[[best, pivot_row]]
        arr[pivot_row + 1:] -= np.outer(
            arr[pivot_row + 1:, col] / arr[pivot_row, col], arr[pivot_row]
        )
        pivot_row += 1

    return pivot_row


def cholesky_banachiewicz(a) -> Optional[np.ndarray]:
    """
    Cholesky-Banachiewicz factorization, computed row by row.

    Mathematical Definition:
        L_jj = sqrt(A_jj - Σ_{k<j} L_jk²)
        L_ij = (A_ij - Σ_{k<j} L_ik L_jk) / L_jj,   i > j

    Returns
    -------
    np.ndarray or None
        Lower triangular L with L Lᵀ = A, or None if A is not square or
        not positive definite.
    """
    arr = _as_square(a)
    if arr is None or not is_valid(arr):
        return None

    size = arr.shape[0]
    lower = np.zeros_like(arr)

    for i in range(size):
        for j in range(i + 1):
            partial = float(np.dot(lower[i, :j], lower[j, :j]))
            if i == j:
                pivot = arr[i, i] - partial
                if pivot <= 0.0:
                    logger.warning("cholesky_banachiewicz: matrix not positive definite", row=i)
                    return None
                lower[i, j] = np.sqrt(pivot)
            else:
                lower[i, j] = (arr[i, j] - partial) / lower[j, j]

    return lower


# ─────────────────────────────────────────────────────────────
# Vector Operations
# ─────────────────────────────────────────────────────────────

def dot_product(a, e) -> float:
    a_arr = _as_vector(a)
    e_arr = _as_vector(e)
    if a_arr.size != e_arr.size:
        raise ValueError(f"dot_product: size mismatch {a_arr.size} vs {e_arr.size}")
    return float(a_arr @ e_arr)


def cross_product(v1, v2) -> Optional[np.ndarray]:
    """Outer product ``v1 v2ᵀ``."""
    if v1 is None or v2 is None:
        return None
    a = np.array(v1, dtype=float)
    b = np.array(v2, dtype=float)
    if a.ndim != 1 or b.ndim != 1 or a.size == 0 or b.size == 0:
        return None
    return np.outer(a, b)


def project(a, e) -> Optional[np.ndarray]:
    """Projection of ``a`` along ``e``."""
    try:
        a_arr = _as_vector(a)
        e_arr = _as_vector(e)
    except ValueError:
        return None
    if a_arr.size != e_arr.size:
        return None
    norm_squared = float(e_arr @ e_arr)
    if norm_squared == 0.0:
        return None
    return e_arr * float(a_arr @ e_arr) / norm_squared


def vector_sum(v) -> float:
    return float(np.sum(_as_vector(v)))


def modulus(v) -> float:
    """Euclidean norm."""
    return float(np.sqrt(np.sum(_as_vector(v) ** 2)))


def positive_or_zero(v) -> bool:
    return bool(np.all(_as_vector(v) >= 0.0))


def negative_or_zero(v) -> bool:
    return bool(np.all(_as_vector(v) <= 0.0))


def positive_linearly_independent(v) -> bool:
    """True when the vector has entries of both signs."""
    return not positive_or_zero(v) and not negative_or_zero(v)


def normalize(v) -> Optional[np.ndarray]:
    if v is None:
        return None
    arr = np.array(v, dtype=float)
    if arr.ndim != 1 or arr.size == 0:
        return None
    norm = np.sqrt(np.sum(arr ** 2))
    if norm == 0.0:
        return None
    return arr / norm


def rayleigh_quotient(a, eigenvector) -> float:
    """``vᵀ A v`` for a unit eigenvector ``v``."""
    transformed = product(a, eigenvector)
    if transformed is None:
        raise ValueError("rayleigh_quotient: incompatible matrix and vector")
    return dot_product(eigenvector, transformed)


# ─────────────────────────────────────────────────────────────
# Orthogonalization
# ─────────────────────────────────────────────────────────────

def gram_schmidt_orthogonalization(v) -> Optional[np.ndarray]:
    """
    Orthogonalize the rows of a square matrix (classical Gram-Schmidt).

        u_i = v_i - Σ_{j<i} (<v_i, u_j> / <u_j, u_j>) u_j
    """
    arr = _as_square(v)
    if arr is None:
        return None

    size = arr.shape[0]
    orthogonal = arr.copy()

    for i in range(size):
        for j in range(i):
            norm_squared = float(orthogonal[j] @ orthogonal[j])
            if norm_squared == 0.0:
                return None
            amplitude = float(arr[i] @ orthogonal[j]) / norm_squared
            orthogonal[i] -= amplitude * orthogonal[j]

    return orthogonal


def gram_schmidt_orthonormalization(v) -> Optional[np.ndarray]:
    orthogonal = gram_schmidt_orthogonalization(v)
    if orthogonal is None:
        return None

    rows = [normalize(row) for row in orthogonal]
    if any(row is None for row in rows):
        return None
    return np.vstack(rows)


@dataclass(frozen=True)
class QR:
    q: np.ndarray
    r: np.ndarray


def qr_decomposition(a) -> Optional[QR]:
    """
    QR decomposition by Gram-Schmidt on the columns of ``a``.

    Returns
    -------
    QR or None
        ``q`` orthonormal, ``r`` upper triangular, ``q @ r == a``.
    """
    arr = _as_square(a)
    if arr is None:
        return None

    q_rows = gram_schmidt_orthonormalization(arr.T)
    if q_rows is None:
        return None

    q = q_rows.T
    r = np.triu(q.T @ arr)
    return QR(q=q, r=r)
