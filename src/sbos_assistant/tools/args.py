from __future__ import annotations

from datetime import date
from typing import Any, Iterable

from sbos_assistant.errors import ToolArgumentError

_MISSING = object()


class ToolArgs:
    """Typed accessors over the untyped JSON arguments a model sends to a tool.

    Missing optional values fall back to the given default; malformed values
    raise ``ToolArgumentError`` so the registry can report them to the model.
    """

    def __init__(self, raw: Any):
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ToolArgumentError("Tool arguments must be a JSON object")
        self._raw = raw

    def has(self, key: str) -> bool:
        return self._raw.get(key) is not None

    def _get(self, key: str, required: bool) -> Any:
        value = self._raw.get(key, _MISSING)
        if value is _MISSING or value is None or (isinstance(value, str) and not value.strip()):
            if required:
                raise ToolArgumentError(f"Missing required argument: {key}")
            return _MISSING
        return value

    def string(self, key: str, *, required: bool = False, default: str | None = None) -> str | None:
        value = self._get(key, required)
        if value is _MISSING:
            return default
        if isinstance(value, (dict, list)):
            raise ToolArgumentError(f"Argument '{key}' must be a string")
        return str(value).strip()

    def integer(
        self,
        key: str,
        *,
        required: bool = False,
        default: int | None = None,
        minimum: int | None = None,
        maximum: int | None = None,
    ) -> int | None:
        value = self._get(key, required)
        if value is _MISSING:
            return default
        if isinstance(value, bool):
            raise ToolArgumentError(f"Argument '{key}' must be an integer")
        try:
            number = int(float(value))
        except (TypeError, ValueError):
            raise ToolArgumentError(f"Argument '{key}' must be an integer") from None
        return _bounded(key, number, minimum, maximum)

    def number(
        self,
        key: str,
        *,
        required: bool = False,
        default: float | None = None,
        minimum: float | None = None,
        maximum: float | None = None,
    ) -> float | None:
        value = self._get(key, required)
        if value is _MISSING:
            return default
        if isinstance(value, bool):
            raise ToolArgumentError(f"Argument '{key}' must be a number")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ToolArgumentError(f"Argument '{key}' must be a number") from None
        return _bounded(key, number, minimum, maximum)

    def boolean(self, key: str, *, default: bool | None = None) -> bool | None:
        value = self._get(key, False)
        if value is _MISSING:
            return default
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in {"true", "yes", "1"}:
                return True
            if lowered in {"false", "no", "0"}:
                return False
        if isinstance(value, (int, float)):
            return bool(value)
        raise ToolArgumentError(f"Argument '{key}' must be a boolean")

    def choice(
        self,
        key: str,
        choices: Iterable[str],
        *,
        required: bool = False,
        default: str | None = None,
    ) -> str | None:
        allowed = list(choices)
        value = self.string(key, required=required)
        if value is None:
            return default
        for option in allowed:
            if value.lower() == option.lower():
                return option
        raise ToolArgumentError(f"Argument '{key}' must be one of: {', '.join(allowed)}")

    def iso_date(self, key: str, *, required: bool = False, default: date | None = None) -> str | None:
        value = self.string(key, required=required)
        if value is None:
            return default.isoformat() if default is not None else None
        try:
            return date.fromisoformat(value[:10]).isoformat()
        except ValueError:
            raise ToolArgumentError(f"Argument '{key}' must be a date in YYYY-MM-DD format") from None

    def string_list(self, key: str, *, default: list[str] | None = None) -> list[str] | None:
        value = self._get(key, False)
        if value is _MISSING:
            return default
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        if isinstance(value, list):
            return [str(item).strip() for item in value if str(item).strip()]
        raise ToolArgumentError(f"Argument '{key}' must be a list of strings")


def _bounded(key: str, number, minimum, maximum):
    if minimum is not None and number < minimum:
        raise ToolArgumentError(f"Argument '{key}' must be >= {minimum}")
    if maximum is not None and number > maximum:
        raise ToolArgumentError(f"Argument '{key}' must be <= {maximum}")
    return number
