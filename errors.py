"""Error taxonomy shared by the ingestion, storage, and reset paths."""

from __future__ import annotations

from typing import Dict, Iterable, Optional


class TelemetryError(Exception):
    """Base class for errors raised by the telemetry core."""


class ValidationError(TelemetryError):
    """An inbound reading is incomplete or holds values that cannot be coerced."""

    def __init__(
        self,
        missing_fields: Iterable[str] = (),
        invalid_fields: Optional[Dict[str, str]] = None,
    ) -> None:
        self.missing_fields = list(missing_fields)
        self.invalid_fields = dict(invalid_fields or {})
        super().__init__(self._describe())

    def _describe(self) -> str:
        parts: list[str] = []
        if self.missing_fields:
            parts.append(f"missing fields: {', '.join(self.missing_fields)}")
        if self.invalid_fields:
            details = ", ".join(
                f"{name} ({reason})" for name, reason in self.invalid_fields.items()
            )
            parts.append(f"invalid fields: {details}")
        return "Invalid reading; " + "; ".join(parts) if parts else "Invalid reading."


class BackendUnavailable(TelemetryError):
    """The durable store could not be reached at startup."""


class BackendOperationError(TelemetryError):
    """A storage operation failed after the backend was selected."""


class TimeSourceError(TelemetryError):
    """The external time service did not yield a usable instant."""


class ResetError(TelemetryError):
    """A scheduled wipe failed; the marker stays put so the next tick retries."""
