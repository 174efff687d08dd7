"""Custom exceptions for curator."""

from typing import Optional


class CuratorError(Exception):
    """Base class for curator errors."""

    pass


class ConfigError(CuratorError):
    """Raised when a template definition is structurally unusable."""

    pass


class ValidationError(CuratorError, ValueError):
    """Raised when a template definition violates its schema rules."""

    def __init__(self, message: str, template_name: Optional[str] = None):
        self.template_name = template_name
        if template_name:
            message = f"Template '{template_name}': {message}"
        super().__init__(message)


class BuildError(CuratorError):
    """Raised when the storage layer fails while building a template playlist."""

    def __init__(self, template_name: str, cause: Exception):
        self.template_name = template_name
        self.cause = cause
        super().__init__(f"Failed to build template '{template_name}': {cause}")
