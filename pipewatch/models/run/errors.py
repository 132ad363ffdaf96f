"""Errors raised by run-service collaborators."""


class RunServiceError(Exception):
    """Base exception for run-service failures."""


class RunNotFoundError(RunServiceError):
    """Raised when the requested run, experiment, pod or artifact does not exist."""


class TransportError(RunServiceError):
    """Raised when a request fails for any reason other than not-found."""


class DecodeError(RunServiceError):
    """Raised when compressed node data cannot be decoded."""


__all__ = [
    "DecodeError",
    "RunNotFoundError",
    "RunServiceError",
    "TransportError",
]
