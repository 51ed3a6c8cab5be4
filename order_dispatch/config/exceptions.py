"""Custom exceptions for configuration management."""

from typing import List, Optional

from pydantic import ValidationError


class ConfigurationError(Exception):
    """
    Exception raised when configuration validation fails.

    Stores every validation error found (rather than stopping at the first)
    and formats them together with suggestions for fixing them.
    """

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        self.message = message
        self.errors = errors or []
        self.suggestions = suggestions or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [self.message]

        if self.errors:
            parts.append("\nValidation Errors:")
            for i, error in enumerate(self.errors, 1):
                parts.append(f"  {i}. {error}")

        if self.suggestions:
            parts.append("\nSuggestions:")
            for suggestion in self.suggestions:
                parts.append(f"  - {suggestion}")

        return "\n".join(parts)

    @classmethod
    def from_validation_error(
        cls, exc: ValidationError, suggestions: Optional[List[str]] = None
    ) -> "ConfigurationError":
        """Translate a pydantic ValidationError into readable messages.

        Args:
            exc: Error raised by ``model_validate``
            suggestions: Optional suggestions to attach

        Returns:
            ConfigurationError listing one message per invalid field
        """
        errors = []
        for error in exc.errors():
            field_path = " -> ".join(str(loc) for loc in error["loc"]) or "<root>"
            error_type = error["type"]

            if error_type == "missing":
                errors.append(f"Missing required field: {field_path}")
            elif error_type in ("string_type", "int_type", "float_type", "bool_type"):
                expected_type = error_type.replace("_type", "")
                errors.append(
                    f"Invalid type for '{field_path}': expected {expected_type}, "
                    f"got {error.get('input')!r}"
                )
            elif error_type == "extra_forbidden":
                errors.append(f"Unknown field: {field_path}")
            else:
                errors.append(f"{field_path}: {error['msg']}")

        return cls(
            "Configuration validation failed",
            errors=errors,
            suggestions=suggestions
            or [
                "Review config.example.yaml for correct format",
                "Verify field types match the expected schema",
            ],
        )
