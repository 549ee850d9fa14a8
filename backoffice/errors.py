from __future__ import annotations

from typing import Any


class SubmissionError(Exception):
    """Raised by a persistence collaborator when a create/update is rejected.

    ``field_errors`` carries server-side validation failures (slug
    collisions and the like) keyed by FieldPath so the session can surface
    them next to the offending inputs.
    """

    def __init__(
        self,
        message: str,
        field_errors: dict[str, str] | None = None,
        *,
        status_code: int | None = None,
        error_type: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.field_errors = dict(field_errors or {})
        self.status_code = status_code
        self.error_type = error_type

    @classmethod
    def from_response(cls, payload: Any, status_code: int | None = None, *, label: str = "Record") -> "SubmissionError":
        if not isinstance(payload, dict):
            suffix = f": {status_code}" if status_code else ""
            return cls(f"Failed to save {label.lower()}{suffix}", status_code=status_code)

        error_type = payload.get("error") if isinstance(payload.get("error"), str) else None
        message = str(payload.get("message") or error_type or f"Failed to save {label.lower()}")

        field_errors: dict[str, str] = {}
        for key in ("fieldErrors", "errors"):
            raw = payload.get(key)
            if isinstance(raw, dict):
                for path, msg in raw.items():
                    if isinstance(path, str) and path:
                        field_errors[path] = str(msg)

        if error_type == "VALIDATION_ERROR" and field_errors:
            message = "Validation Error: " + ", ".join(f"{k}: {v}" for k, v in field_errors.items())
        elif error_type == "NOT_FOUND":
            message = f"{label} not found or has been deleted"
        elif error_type == "RATE_LIMITED":
            message = "Too many requests. Please try again later."

        return cls(message, field_errors, status_code=status_code, error_type=error_type)
