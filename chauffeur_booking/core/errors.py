"""Application error taxonomy.

Every error carries a machine-readable ``code`` and the HTTP status the API
layer renders it with. Errors raised from background jobs (reconciliation,
scheduler) never reach a user; the queue decides whether to retry them.
"""


class AppError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"
    title = "Internal Server Error"

    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []

    def to_problem(self) -> dict:
        body = {
            "type": self.code,
            "title": self.title,
            "status": self.status_code,
            "detail": self.message,
        }
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"
    title = "Validation Failed"

    def __init__(self, errors: list[dict], message: str | None = None):
        super().__init__(message or "One or more validation errors occurred", errors)

    @classmethod
    def for_field(cls, field: str, message: str):
        return cls([{"field": field, "message": message}], message)


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    title = "Not Found"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"
    title = "Conflict"


class PaymentIntentError(AppError):
    status_code = 502
    code = "PAYMENT_INTENT_FAILED"
    title = "Payment Intent Failed"


class ReconciliationAnomaly(AppError):
    """A tx_ref that matched no entity, or more than one."""

    code = "RECONCILIATION_ANOMALY"
    title = "Reconciliation Anomaly"

    def __init__(self, message: str, tx_ref: str, **context):
        super().__init__(message)
        self.tx_ref = tx_ref
        self.context = context


class TransientInfraError(AppError):
    """Store or provider failure worth retrying."""

    status_code = 503
    code = "TRANSIENT_INFRA_ERROR"
    title = "Service Unavailable"
