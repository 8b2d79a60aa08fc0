"""Error taxonomy for the intake core.

Validation problems are recoverable locally; gateway problems are surfaced as
notices while the ledger keeps the user's message; persistence only fails when
both the remote and the local path fail.
"""


class IntakeError(Exception):
    """Base class for all intake errors."""


class ValidationRejected(IntakeError):
    """Input rejected locally or by the gateway (empty message, bad age, ...)."""


class SubmissionInFlight(ValidationRejected):
    """A symptom message is already awaiting its assessment."""


class SessionStateError(IntakeError):
    """Operation not allowed in the current UI mode."""


class GatewayUnreachable(IntakeError):
    """Transport failure or timeout talking to the assessment gateway."""


class GatewayError(IntakeError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PersistenceFailure(IntakeError):
    def __init__(self, remote_error: Exception, local_error: Exception) -> None:
        super().__init__(
            f"Assessment could not be saved (remote: {remote_error}; local: {local_error})"
        )
        self.remote_error = remote_error
        self.local_error = local_error


class DialerError(IntakeError):
    """The configured emergency number cannot be dialled."""
