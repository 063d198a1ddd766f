"""Result of a record's own validation."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    message: str = ""

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(True)

    @classmethod
    def fail(cls, message: str) -> "ValidationResult":
        return cls(False, message)
