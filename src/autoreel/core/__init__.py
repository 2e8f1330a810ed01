"""Shared low-level utilities."""

from .subprocess_utils import run_command, tail_lines
from .validation import is_valid_uuid

__all__ = ["is_valid_uuid", "run_command", "tail_lines"]
