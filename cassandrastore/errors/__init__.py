# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.


"""
Error handling for the Cassandra storage layer.

Every failure raised by this package is a StoreError carrying a structured
error code, the source component and the operation that failed. Absent
records are not errors: lookups return None.
"""

from enum import Enum
from datetime import datetime
from typing import Dict, Any, Optional
from dataclasses import dataclass


class ErrorCode(Enum):
    """Structured error codes for storage operations."""

    # Cluster communication errors
    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"
    NO_HOST_AVAILABLE = "no_host_available"
    STORAGE_ERROR = "storage_error"

    # Value errors
    DECODE_FAILED = "decode_failed"
    ENCODE_FAILED = "encode_failed"

    # Caller errors
    INVALID_PARAMETER = "invalid_parameter"
    INVALID_TTL = "invalid_ttl"
    MISSING_PARAMETER = "missing_parameter"
    CONFIGURATION_ERROR = "configuration_error"
    UNSUPPORTED_QUERY = "unsupported_query"


class ErrorSource(Enum):
    """Components where errors can originate."""

    CLIENT = "client"
    CLUSTER = "cluster"
    CODEC = "codec"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    SESSION_STORE = "session_store"
    METADATA_STORE = "metadata_store"


@dataclass
class ErrorContext:
    """Additional context for errors."""

    query: Optional[str] = None
    timestamp: datetime = None
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()
        if self.metadata is None:
            self.metadata = {}


class StoreError(Exception):
    """
    Base exception class for all storage layer errors.

    Provides structured error information with an error code, the
    component the error originated from, the failing operation and
    the underlying cause.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        operation: str = "",
        source: ErrorSource = ErrorSource.CLUSTER,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None
    ):
        self.code = code
        self.message = message
        self.operation = operation
        self.source = source
        self.context = context or ErrorContext()
        self.cause = cause

        if operation:
            super().__init__(f"Storage error in {operation}: {message}")
        else:
            super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        result = {
            "error": self.code.value,
            "error_description": self.message,
            "error_source": self.source.value,
            "timestamp": self.context.timestamp.isoformat(),
        }

        if self.operation:
            result["operation"] = self.operation

        if self.context.query:
            result["query"] = self.context.query

        if self.context.metadata:
            result["metadata"] = self.context.metadata

        if self.cause:
            result["caused_by"] = str(self.cause)

        return result

    def is_retryable(self) -> bool:
        """Check if this error might be resolved by retrying."""
        return self.code in [
            ErrorCode.UNAVAILABLE,
            ErrorCode.TIMEOUT,
            ErrorCode.NO_HOST_AVAILABLE,
        ]


class StorageError(StoreError):
    """Non-transient failure reported by the database client."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.STORAGE_ERROR, **kwargs):
        kwargs.setdefault("source", ErrorSource.CLUSTER)
        super().__init__(code=code, message=message, **kwargs)


class TransientStorageError(StorageError):
    """Cluster unreachable, timed out or unable to reach quorum."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.UNAVAILABLE, **kwargs):
        super().__init__(message, code=code, **kwargs)


class DecodeError(StoreError):
    """A stored value could not be decoded."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("source", ErrorSource.CODEC)
        super().__init__(code=ErrorCode.DECODE_FAILED, message=message, **kwargs)


class PreconditionViolation(StoreError):
    """Invalid input, rejected before any network call."""

    def __init__(self, message: str, field: Optional[str] = None,
                 code: ErrorCode = ErrorCode.INVALID_PARAMETER, **kwargs):
        context = kwargs.pop("context", ErrorContext())
        if field:
            context.metadata["field"] = field

        kwargs.setdefault("source", ErrorSource.VALIDATION)
        super().__init__(code=code, message=message, context=context, **kwargs)
        self.field = field


# Error utility functions
def create_precondition_error(message: str, field: Optional[str] = None,
                              operation: str = "") -> PreconditionViolation:
    """Create a precondition violation."""
    return PreconditionViolation(message, field=field, operation=operation)


def require_string(value: Any, field: str, operation: str = "") -> str:
    """Reject non-string arguments."""
    if not isinstance(value, str):
        raise create_precondition_error(
            f"{field} must be a string, got {type(value).__name__}",
            field=field,
            operation=operation,
        )
    return value


__all__ = [
    "ErrorCode",
    "ErrorSource",
    "ErrorContext",
    "StoreError",
    "StorageError",
    "TransientStorageError",
    "DecodeError",
    "PreconditionViolation",
    "create_precondition_error",
    "require_string",
]
