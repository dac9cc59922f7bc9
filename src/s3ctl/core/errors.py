class S3CtlError(Exception):
    """
    Base error for every failure surfaced by s3ctl.

    Carries the operation name and the bucket/key or local path involved so
    the runner can report it without knowing which layer raised it.
    """

    def __init__(self, message: str, operation: str = "", target: str = ""):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.target = target

    def __str__(self) -> str:
        if self.operation and self.target:
            return f"{self.operation} {self.target}: {self.message}"
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class AddressError(S3CtlError):
    """Malformed s3:// address or bucket name."""


class InvalidAddressError(AddressError):
    """The raw string does not start with the s3:// scheme."""


class NotFoundError(S3CtlError):
    """Bucket or object does not exist."""


class BackendError(S3CtlError):
    """Network or protocol failure reported by the storage backend."""


class LocalIOError(S3CtlError):
    """Local filesystem access failure."""

    def __init__(
        self,
        message: str,
        operation: str = "",
        target: str = "",
        cause: OSError | None = None,
    ):
        super().__init__(message, operation, target)
        self.cause = cause


class PathError(LocalIOError):
    """A local directory tree cannot be stat'd or read."""


class ConfigError(S3CtlError):
    """Missing or unusable profile configuration."""


class OperationCancelledError(S3CtlError):
    """Raised when the cancellation signal is observed."""

    def __init__(self, operation: str = "", target: str = ""):
        super().__init__("operation cancelled", operation, target)
