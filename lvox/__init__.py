"""Vocal processing chain for NumPy audio buffers: dynamics, filtering, saturation, reverb, delay and limiting."""

__version__ = "1.1.0"