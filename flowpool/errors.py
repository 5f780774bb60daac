"""Machine-readable error categories for Flow client failures."""


class FlowError(Exception):
    """Base exception for all flowpool errors."""


class IdentityError(FlowError):
    """Signing key loading or derivation error."""


class SignatureError(FlowError):
    """Signature verification failed."""


class EncodingError(FlowError):
    """Canonical transaction or argument encoding failed."""


class ArgumentError(FlowError, ValueError):
    """Wrong arity or type for a job's arguments."""


class KeyNotFoundError(FlowError, LookupError):
    """A worker's public key is absent from an account's key list."""


class UnsupportedJobError(FlowError, NotImplementedError):
    """The worker has no handler for the job kind."""


class WorkerConnectionError(FlowError, ConnectionError):
    """Channel or liveness failure while a worker connects."""


class RemoteError(FlowError):
    """The access node rejected a call or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteTimeoutError(FlowError, TimeoutError):
    """A remote call did not finish within its deadline."""


class QueueFullError(FlowError):
    """The pending queue is at capacity."""


class ShutdownError(FlowError):
    """The client stopped before the job could run."""
