"""Payment error taxonomy.

Each error carries the HTTP status it maps to and a message that is safe to
show the caller. Processor response bodies never go into ``message``; they are
logged where the error is raised.
"""


class PaymentError(Exception):
    """Base class for errors surfaced by the payments core."""

    status_code: int = 400

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(PaymentError):
    """Malformed input (missing lease id, non-positive amount)."""

    status_code = 400


class AuthorizationError(PaymentError):
    """The actor does not own the lease or payment."""

    status_code = 403


class NotFoundError(PaymentError):
    status_code = 404


class ProcessorError(PaymentError):
    """The external payment processor failed or timed out."""

    status_code = 502

    def __init__(
        self,
        message: str = "Payment processor request failed",
        status_code: int | None = None,
        response_data: dict | None = None,
    ):
        self.response_data = response_data or {}
        super().__init__(message, status_code)


class LeaseLookupError(PaymentError):
    """The lease registry could not be reached."""

    status_code = 502


class ReconciliationError(PaymentError):
    """A webhook event could not be applied.

    Logged by the reconciler and never returned to the processor.
    """

    status_code = 200
