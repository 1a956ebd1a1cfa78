"""
Numeric Validity Helpers
========================
Finiteness checks shared by every value object in the library.
"""

import math
import numpy as np
from typing import Union

Numeric = Union[float, int, np.ndarray, list, tuple]


def is_valid(value: Numeric) -> bool:
    """True if the scalar, or every element of the array, is finite."""
    if value is None:
        return False
    try:
        arr = np.asarray(value, dtype=float)
    except (TypeError, ValueError):
        return False
    return bool(np.all(np.isfinite(arr)))


def require_valid(value: Numeric, name: str):
    """
    Validate and return a finite scalar or array.

    Parameters
    ----------
    value : float or array-like
        Input to validate.
    name : str
        Name reported in the error message.

    Returns
    -------
    float or np.ndarray
        ``float`` for scalar input, ``np.ndarray`` otherwise.

    Raises
    ------
    ValueError
        If the value is None, non-numeric or not finite.
    """
    if not is_valid(value):
        raise ValueError(f"{name} must be finite, got {value!r}")
    if np.ndim(value) == 0:
        return float(value)
    return np.asarray(value, dtype=float)


def require_positive(value: float, name: str) -> float:
    value = require_valid(value, name)
    if value <= 0.0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def factorial(n: int) -> int:
    """Factorial of a non-negative integer."""
    if int(n) != n or n < 0:
        raise ValueError(f"factorial requires a non-negative integer, got {n}")
    return math.factorial(int(n))
