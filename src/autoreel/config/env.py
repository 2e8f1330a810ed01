"""Typed access to AUTOREEL_* environment variables.

Pass a mapping to EnvReader in tests instead of patching os.environ.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRUTHY = frozenset({"true", "1", "yes", "on"})


class EnvReader:
    """Read and convert environment variables.

    Empty strings count as unset. Values that fail conversion are logged
    and replaced by the default rather than raising.
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env: Mapping[str, str] = os.environ if env is None else env

    def _convert(
        self, var: str, convert: Callable[[str], T], default: T | None
    ) -> T | None:
        raw = self.get_str(var)
        if raw is None:
            return default
        try:
            return convert(raw)
        except ValueError:
            logger.warning("Ignoring %s=%r: not a valid %s", var, raw, convert.__name__)
            return default

    def get_str(self, var: str, default: str | None = None) -> str | None:
        return self._env.get(var) or default

    def get_int(self, var: str, default: int | None = None) -> int | None:
        return self._convert(var, int, default)

    def get_float(self, var: str, default: float | None = None) -> float | None:
        return self._convert(var, float, default)

    def get_bool(self, var: str, default: bool | None = None) -> bool | None:
        """Anything outside true/1/yes/on (any case) reads as False."""
        return self._convert(var, lambda raw: raw.lower() in _TRUTHY, default)

    def get_path(
        self, var: str, must_exist: bool = False, default: Path | None = None
    ) -> Path | None:
        """Expand ~ in the value; with must_exist, missing paths fall back."""
        path = self._convert(var, lambda raw: Path(raw).expanduser(), default)
        if must_exist and path is not None and path != default and not path.exists():
            logger.warning("%s points to a missing path: %s", var, path)
            return default
        return path
