"""Outline shape analysis with Fourier shape descriptors."""

__version__ = "0.1.0"
