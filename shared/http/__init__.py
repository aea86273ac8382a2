"""HTTP helpers and exception definitions used across services."""

from .errors import (
    BackendUnavailableError,
    DischargeRecordNotFoundError,
    DischargeRemovalError,
    ProblemDetails,
    ProblemDetailsException,
    ServiceNotFoundError,
    register_exception_handlers,
)

__all__ = [
    "BackendUnavailableError",
    "DischargeRecordNotFoundError",
    "DischargeRemovalError",
    "ProblemDetails",
    "ProblemDetailsException",
    "ServiceNotFoundError",
    "register_exception_handlers",
]
