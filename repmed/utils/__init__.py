"""Utilities for repmed."""

from .determinism import block_generators, make_seed_sequence
from .logging import setup_logger

__all__ = [
    "setup_logger",
    "make_seed_sequence",
    "block_generators",
]
