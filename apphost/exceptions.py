"""Exceptions related to apphost."""

__all__ = [
    "AppHostException",
    "InputException",
    "ObjectNotFoundError",
    "UnsupportedOperationError",
    "MalformedResourceError",
    "DistributedApplicationException",
]


class AppHostException(Exception):
    """Generic base exception used for this library."""


class InputException(AppHostException):
    """Raised when the input files or values are not formatted as expected."""


class ObjectNotFoundError(AppHostException):
    """Raised when an object is not found in the store."""


class UnsupportedOperationError(AppHostException, NotImplementedError):
    """Raised when a client operation is not supported by an implementation."""


class MalformedResourceError(InputException):
    """Raised when a resource can't be round tripped through the wire format."""


class DistributedApplicationException(AppHostException):
    """Raised when the application model is composed incorrectly."""
