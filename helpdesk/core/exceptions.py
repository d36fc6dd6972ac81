"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class TriageStageException(ApplicationException):
    """
    Unexpected failure inside a triage pipeline stage.

    Wraps the original exception with the stage name and the run's trace id
    so the failure can be located in the audit trail.
    """

    def __init__(
        self,
        stage: str,
        trace_id: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.stage = stage
        self.trace_id = trace_id
        super().__init__(
            f"Triage stage '{stage}' failed: {message}",
            {"stage": stage, "trace_id": trace_id, **(details or {})}
        )
