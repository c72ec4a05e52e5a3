"""Dask integration for pipeshell."""

from .engine import DaskEngine

__all__ = ["DaskEngine"]
