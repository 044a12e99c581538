"""Typed read access to a stage's free-form settings mapping.

Settings come from YAML files written by hand, so numbers may arrive as
strings ("250") and booleans as "true"/"false". Accessors coerce those but
refuse values that cannot represent the requested type: a typo in a
config file fails the build of that pipeline instead of silently falling
back to a default.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from voxpipe.exceptions import InvalidStageSettingError

_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})
_FALSE_STRINGS = frozenset({"false", "no", "off", "0"})


class StageSettings:
    """Read-only view over one stage's settings.

    Key lookup is exact first, then case-insensitive, so ``threshold`` and
    ``Threshold`` both resolve.
    """

    __slots__ = ("_stage_type", "_values")

    def __init__(self, stage_type: str, values: Mapping[str, Any] | None = None) -> None:
        self._stage_type = stage_type
        self._values: dict[str, Any] = dict(values or {})

    def __contains__(self, key: str) -> bool:
        return self._lookup(key) is not _MISSING

    def __repr__(self) -> str:
        return f"StageSettings({self._stage_type!r}, {self._values!r})"

    def _lookup(self, key: str) -> Any:
        if key in self._values:
            return self._values[key]
        lowered = key.lower()
        for candidate, value in self._values.items():
            if candidate.lower() == lowered:
                return value
        return _MISSING

    def _invalid(self, key: str, expected: str, value: object) -> InvalidStageSettingError:
        return InvalidStageSettingError(self._stage_type, key, expected, value)

    def get_str(self, key: str, default: str | None = None) -> str | None:
        value = self._lookup(key)
        if value is _MISSING or value is None:
            return default
        if isinstance(value, (dict, list)):
            raise self._invalid(key, "a string", value)
        return str(value)

    def get_bool(self, key: str, default: bool) -> bool:
        value = self._lookup(key)
        if value is _MISSING or value is None:
            return default
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        raise self._invalid(key, "a boolean", value)

    def get_int(self, key: str, default: int) -> int:
        value = self._lookup(key)
        if value is _MISSING or value is None:
            return default
        if isinstance(value, bool):
            raise self._invalid(key, "an integer", value)
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                pass
        raise self._invalid(key, "an integer", value)

    def get_float(self, key: str, default: float) -> float:
        value = self._lookup(key)
        if value is _MISSING or value is None:
            return default
        if isinstance(value, bool):
            raise self._invalid(key, "a number", value)
        if isinstance(value, (int, float)):
            result = float(value)
        elif isinstance(value, str):
            try:
                result = float(value.strip())
            except ValueError:
                raise self._invalid(key, "a number", value) from None
        else:
            raise self._invalid(key, "a number", value)
        if not math.isfinite(result):
            raise self._invalid(key, "a finite number", value)
        return result


class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:
        return "<missing>"


_MISSING: Any = _Missing()
