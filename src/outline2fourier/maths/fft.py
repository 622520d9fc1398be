from __future__ import annotations

import numpy as np
import numpy.typing as npt

from outline2fourier.types import ComplexArray


def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def _as_transform_input(values: npt.ArrayLike) -> ComplexArray:
    x = np.asarray(values, dtype=np.complex128).reshape(-1)
    if not is_power_of_two(len(x)):
        raise ValueError(f"FFT length must be a power of two, got {len(x)}")
    return x


def _fft_recursive(x: ComplexArray) -> ComplexArray:
    n = len(x)
    if n == 1:
        return x.copy()
    even = _fft_recursive(x[0::2])
    odd = _fft_recursive(x[1::2])
    twiddle = np.exp(-2j * np.pi * np.arange(n // 2) / n) * odd
    return np.concatenate([even + twiddle, even - twiddle])


def fft(values: npt.ArrayLike) -> ComplexArray:
    """Radix-2 Cooley-Tukey transform, X[k] = sum x[j] exp(-2 pi i jk / N), unnormalized."""
    return _fft_recursive(_as_transform_input(values))


def ifft(values: npt.ArrayLike) -> ComplexArray:
    """Inverse of :func:`fft`, normalized by 1/N."""
    x = _as_transform_input(values)
    return np.conj(_fft_recursive(np.conj(x))) / len(x)
