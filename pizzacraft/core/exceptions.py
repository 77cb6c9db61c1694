"""Domain-level exceptions.

Services raise these; ``setup_exception_handlers`` turns them into the
standard ``{"success": false, "message": ...}`` envelope using ``status_code``.
"""


class PizzaCraftError(Exception):
    """Base class for all business rule violations."""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PizzaCraftError):
    status_code = 400


class AuthenticationError(PizzaCraftError):
    status_code = 401


class PermissionDeniedError(PizzaCraftError):
    status_code = 403


class NotFoundError(PizzaCraftError):
    status_code = 404


class InsufficientStockError(PizzaCraftError):
    status_code = 400

    def __init__(self, item_name: str, available: int, required: int):
        self.item_name = item_name
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient stock for {item_name}. Available: {available}, Required: {required}"
        )


class InvalidStatusTransitionError(PizzaCraftError):
    status_code = 409


class PaymentVerificationError(PizzaCraftError):
    status_code = 400


class PaymentGatewayError(PizzaCraftError):
    """The gateway was unreachable or rejected the call. Detail stays in the logs."""
    status_code = 500
    public_message = "Payment service is currently unavailable"
