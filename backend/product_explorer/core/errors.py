"""Service-level errors mapped to HTTP responses in main.py."""
from __future__ import annotations


class ValidationError(ValueError):
    """Malformed or out-of-range input; names the offending field."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message, "field": self.field}
