"""Validation and coercion of inbound sensor readings."""

from __future__ import annotations

import math
from typing import Any, Callable, Dict, Mapping, Tuple

from errors import ValidationError
from models.records import Reading

# Canonical field -> accepted payload keys, in priority order. The Portuguese
# names are what the greenhouse firmware posts.
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "temperature": ("temperature", "temperatura"),
    "air_humidity": ("airHumidity", "air_humidity", "umidadeAr"),
    "soil_humidity": ("soilHumidity", "soil_humidity", "umidadeSolo"),
    "light_level": ("lightLevel", "light_level", "ldr"),
    "pump_active": ("pumpActive", "pump_active", "bomba"),
}

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}

# Integer columns are signed 64-bit in every supported database.
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("expected a number, got a boolean")
    if isinstance(value, (int, float)):
        try:
            result = float(value)
        except OverflowError:
            raise ValueError("number too large") from None
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            raise ValueError(f"not a number: {value!r}") from None
    else:
        raise ValueError(f"expected a number, got {type(value).__name__}")
    if not math.isfinite(result):
        raise ValueError("must be finite")
    return result


def _to_int(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        result = value
    else:
        number = _to_float(value)
        if not number.is_integer():
            raise ValueError(f"expected an integer, got {value!r}")
        result = int(number)
    if not INT64_MIN <= result <= INT64_MAX:
        raise ValueError(f"integer out of range, got {value!r}")
    return result


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        candidate = value.strip().lower()
        if candidate in _TRUE_STRINGS:
            return True
        if candidate in _FALSE_STRINGS:
            return False
    raise ValueError(f"expected a boolean, got {value!r}")


_COERCERS: Dict[str, Callable[[Any], Any]] = {
    "temperature": _to_float,
    "air_humidity": _to_float,
    "soil_humidity": _to_int,
    "light_level": _to_int,
    "pump_active": _to_bool,
}


class ReadingValidator:
    """Turns a raw submission into a ``Reading`` or raises ``ValidationError``."""

    def validate(self, payload: Mapping[str, Any]) -> Reading:
        if not isinstance(payload, Mapping):
            raise ValidationError(invalid_fields={"payload": "expected a JSON object"})

        missing: list[str] = []
        invalid: dict[str, str] = {}
        values: dict[str, Any] = {}

        for field, aliases in FIELD_ALIASES.items():
            raw = self._lookup(payload, aliases)
            if raw is None:
                missing.append(aliases[0])
                continue
            try:
                values[field] = _COERCERS[field](raw)
            except ValueError as exc:
                invalid[aliases[0]] = str(exc)

        if missing or invalid:
            raise ValidationError(missing_fields=missing, invalid_fields=invalid)
        return Reading(**values)

    @staticmethod
    def _lookup(payload: Mapping[str, Any], aliases: Tuple[str, ...]) -> Any:
        for alias in aliases:
            value = payload.get(alias)
            if value is not None:
                return value
        return None
