"""Pricey receipt tooling."""

__version__ = "0.3.0"
