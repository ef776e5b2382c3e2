"""Shared utilities and configuration handling."""

from .config import DEFAULTS, load_config
from .lazy import LazyLoader

__all__ = ["DEFAULTS", "LazyLoader", "load_config"]
