"""Exceptions raised by LoanDesk services and mapped to HTTP responses."""


class LoanDeskError(Exception):
    """Base exception for all LoanDesk errors."""

    status_code = 500

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message

    def to_dict(self):
        payload = {'status': 'error', 'message': self.message}
        if self.details:
            payload['details'] = self.details
        return payload


class ValidationError(LoanDeskError):
    """Raised when request data is missing, malformed or out of range."""
    status_code = 400


class LoanAmountOutOfRange(ValidationError):
    """Raised when a requested amount falls outside the configured limits."""

    def __init__(self, amount: float, minimum: float, maximum: float):
        details = {
            'amount': amount,
            'min': minimum,
            'max': maximum,
        }
        message = f"Loan amount must be between {_fmt(minimum)} and {_fmt(maximum)}"
        super().__init__(message, details)
        self.minimum = minimum
        self.maximum = maximum


class AuthenticationError(LoanDeskError):
    """Raised when the caller could not be identified."""
    status_code = 401


class AuthorizationError(LoanDeskError):
    """Raised when the caller lacks the role or ownership an operation needs."""
    status_code = 403

    def __init__(self, message: str = "Not authorized", details: dict = None):
        super().__init__(message, details)


class NotFoundError(LoanDeskError):
    """Raised when a referenced record does not exist."""
    status_code = 404

    def __init__(self, resource: str, record_id=None):
        details = {}
        if record_id is not None:
            details['id'] = record_id
        super().__init__(f"{resource} not found", details)


def _fmt(value):
    # 5000.0 -> "5000", 5000.5 -> "5000.5"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
