"""Domain exceptions raised by the order, settlement and payout operations."""


class LedgerError(Exception):
    """Base exception for all ledger operation failures."""

    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(LedgerError):
    """Raised when request fields are missing or malformed."""

    status_code = 400


class NotFoundError(LedgerError):
    """Raised when a referenced order, product, user or payout doesn't exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id=None):
        self.entity = entity
        self.entity_id = entity_id
        msg = f"{entity} not found"
        if entity_id is not None:
            msg = f"{entity} {entity_id} not found"
        super().__init__(msg)


class InsufficientFundsError(LedgerError):
    """Raised when a payout exceeds the seller's wallet balance."""

    status_code = 400

    def __init__(self, seller_id=None):
        self.seller_id = seller_id
        super().__init__("Insufficient funds")


class ConflictError(LedgerError):
    """Raised when a concurrent mutation lost the race for the same row."""

    status_code = 409


class OutOfStockError(ConflictError):
    def __init__(self, product_id, requested: int):
        self.product_id = product_id
        self.requested = requested
        super().__init__(f"Insufficient stock for product {product_id}")


class InvalidTransitionError(ConflictError):
    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change order status from {current} to {requested}")


class TransactionError(LedgerError):
    """Raised when the store fails mid-transaction. Nothing was committed."""

    status_code = 500
