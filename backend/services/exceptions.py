"""Checkout errors.

Raised by the checkout engine; the API layer turns them into
``{"errorKind": ..., "message": ...}`` responses with ``status_code``.
"""


class CheckoutError(Exception):
    error_kind = "CheckoutError"
    status_code = 400
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"errorKind": self.error_kind, "message": self.message}


class EmptyCart(CheckoutError):
    """No cart lines were supplied."""
    error_kind = "EmptyCart"

    def __init__(self, message: str = "Cart is empty."):
        super().__init__(message)


class ProductNotFound(CheckoutError):
    error_kind = "ProductNotFound"

    def __init__(self, product_id):
        super().__init__(f"Product not found: {product_id}")
        self.product_id = product_id


class InsufficientStock(CheckoutError):
    error_kind = "InsufficientStock"

    def __init__(self, product_id, product_name=None, requested=None, available=None):
        label = product_name or product_id
        message = f"Insufficient stock for product: {label}"
        if requested is not None and available is not None:
            message += f" (requested {requested}, available {available})"
        super().__init__(message)
        self.product_id = product_id
        self.requested = requested
        self.available = available


class InvalidQuantity(CheckoutError):
    error_kind = "InvalidQuantity"

    def __init__(self, product_id, quantity):
        super().__init__(f"Quantity must be a positive whole number for product: {product_id} (got {quantity!r})")
        self.product_id = product_id
        self.quantity = quantity


class PaymentNotConfirmed(CheckoutError):
    error_kind = "PaymentNotConfirmed"
    status_code = 402

    def __init__(self, message: str = "Payment has not been confirmed."):
        super().__init__(message)


class MissingCustomer(CheckoutError):
    error_kind = "MissingCustomer"
    status_code = 401

    def __init__(self, message: str = "Checkout requires an authenticated customer."):
        super().__init__(message)


class TransactionConflict(CheckoutError):
    """A concurrent transaction touched the same rows; safe to retry."""
    error_kind = "TransactionConflict"
    status_code = 409
    retryable = True


class PersistenceError(CheckoutError):
    error_kind = "PersistenceError"
    status_code = 500


class CheckoutTimeout(CheckoutError):
    error_kind = "CheckoutTimeout"
    status_code = 504
    retryable = True
