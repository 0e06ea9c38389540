"""Exception hierarchy for Optic.

All library exceptions inherit from OpticError. Downstream request
failures that are not passed through unchanged by the HTTP telemetry
middleware are wrapped in RequestProcessingError, which keeps the
original exception as its cause.
"""


class OpticError(Exception):
    """Base exception for all Optic errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(OpticError):
    """Raised when the integration cannot be wired at startup."""


class RequestProcessingError(OpticError):
    """Raised when a downstream request handler fails.

    Wraps the original exception, which is available both as
    ``cause`` and as the standard ``__cause__`` chain.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause
