"""Exception hierarchy for the policy core."""

from typing import Any


class WardenError(Exception):
    """Base exception carrying a machine-readable code and details."""

    def __init__(
        self, code: str, message: str, details: dict[str, Any] | None = None
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Render the error for operators and API responses."""
        return {"code": self.code, "message": self.message, "details": self.details}


class ConfigurationError(WardenError):
    """A configuration failed validation and cannot be activated."""

    def __init__(self, errors: list[str], warnings: list[str] | None = None) -> None:
        self.errors = list(errors)
        self.warnings = list(warnings or [])
        super().__init__(
            "CONFIGURATION_INVALID",
            f"configuration has {len(self.errors)} error(s)",
            {"errors": self.errors, "warnings": self.warnings},
        )


class IntrospectionError(WardenError):
    """The presented token could not be resolved to an active grant."""

    def __init__(self, message: str = "token is not active") -> None:
        super().__init__("INTROSPECTION_FAILED", message)


class EvaluationError(WardenError):
    """The live authorization evaluator could not produce a decision."""

    def __init__(self, message: str = "authorization evaluation failed") -> None:
        super().__init__("EVALUATION_FAILED", message)
