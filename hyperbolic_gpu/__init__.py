"""Hyperbolic GPU - rent marketplace GPUs and drive them over SSH."""

__version__ = "0.1.0"
