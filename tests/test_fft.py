import numpy as np
import pytest

from outline2fourier.maths.fft import fft, ifft, is_power_of_two


def test_fft_matches_numpy_for_power_of_two_lengths():
    rng = np.random.default_rng(3)
    for n in (1, 2, 8, 64, 1024):
        x = rng.normal(size=n) + 1j * rng.normal(size=n)
        assert np.allclose(fft(x), np.fft.fft(x), atol=1e-9)


def test_inverse_fft_recovers_input():
    rng = np.random.default_rng(11)
    for n in (4, 32, 256):
        x = rng.normal(size=n) + 1j * rng.normal(size=n)
        assert np.allclose(ifft(fft(x)), x, atol=1e-12)


def test_ifft_is_normalized():
    spectrum = np.zeros(8, dtype=np.complex128)
    spectrum[0] = 8.0
    assert np.allclose(ifft(spectrum), np.ones(8))


def test_fft_rejects_non_power_of_two():
    assert not is_power_of_two(0)
    assert not is_power_of_two(6)
    with pytest.raises(ValueError):
        fft(np.ones(6))
    with pytest.raises(ValueError):
        ifft(np.ones(0))
