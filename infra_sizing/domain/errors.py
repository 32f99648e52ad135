"""
Domain errors shared by the sizing, pricing and growth engines.
"""
from typing import Any, Dict


class ConfigurationError(ValueError):
    """Raised when a configuration value is invalid and no result can be computed."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "field": self.field,
            "message": self.message,
        }
