# storefront/domain/errors.py
"""
Domain errors raised by services and mapped to HTTP responses in one place
(see ``storefront.api.create_app``).
"""


class StorefrontError(Exception):
    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(StorefrontError):
    status_code = 400
    default_detail = "Invalid input"


class UnauthorizedError(StorefrontError):
    status_code = 401
    default_detail = "Unauthorized"


class ForbiddenError(StorefrontError):
    status_code = 403
    default_detail = "Forbidden"


class NotFoundError(StorefrontError):
    status_code = 404
    default_detail = "Not found"


class OutOfStockError(StorefrontError):
    status_code = 400

    def __init__(self, product_id: int, product_name: str | None = None):
        self.product_id = product_id
        self.product_name = product_name
        name = product_name or f"#{product_id}"
        super().__init__(f"Product {name} is out of stock")


class EmptyCartError(StorefrontError):
    status_code = 400
    default_detail = "Cart is empty"


class ConflictError(StorefrontError):
    status_code = 409
    default_detail = "Conflict"


class CheckoutAlreadyInProgressError(ConflictError):
    default_detail = "A checkout for these items is already in progress"


class InvalidTransitionError(ConflictError):
    default_detail = "Invalid order status transition"


class PaymentGatewayUnavailable(StorefrontError):
    """The gateway could not be reached. Never terminal for an order."""

    status_code = 202
    default_detail = "Payment is being processed"


class InternalError(StorefrontError):
    pass
