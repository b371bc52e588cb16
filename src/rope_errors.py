"""Errors raised by the 3-axis RoPE encoding engine."""


class InvalidDimension(ValueError):
    """An embedding dimension, axis width, or grid extent is odd or non-positive."""


class InvalidBase(ValueError):
    """The frequency base is not a finite real greater than 1."""
