"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/Actor
  2xxx: Wallet/Ledger
  3xxx: Cart/Conversion
  4xxx: Order state machine
  5xxx: Payout
  6xxx: Invoice
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


class ValidationError(AppError):
    """Malformed input (missing address, bad amount, unknown status)."""

    def __init__(self, message: str, code: int = 9003) -> None:
        super().__init__(code, message, 400)


class NotFoundError(AppError):
    def __init__(self, message: str, code: int = 9004) -> None:
        super().__init__(code, message, 404)


class ConflictError(AppError):
    """Transition not valid from the current state, or a double-conversion attempt."""

    def __init__(self, message: str, code: int = 4001) -> None:
        super().__init__(code, message, 409)


class IntegrityError(AppError):
    """Ledger/order mismatch detected during reconciliation. Never auto-corrected."""

    def __init__(self, detail: str) -> None:
        super().__init__(9005, f"Integrity violation: {detail}", 500)


# --- 1xxx: Auth/Actor ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired token", 401)


class ForbiddenError(AppError):
    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(1006, detail, 403)


class InvalidWebhookSecretError(AppError):
    def __init__(self) -> None:
        super().__init__(1007, "Invalid webhook secret", 401)


# --- 2xxx: Wallet/Ledger ---

class InsufficientFundsError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient available balance: required {required}, available {available}",
            422,
        )


class WalletNotFoundError(NotFoundError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"Wallet not found for user {user_id}", 2002)


# --- 3xxx: Cart/Conversion ---

class CartNotFoundError(NotFoundError):
    def __init__(self, cart_id: str) -> None:
        super().__init__(f"Cart not found: {cart_id}", 3001)


class CartEmptyError(ValidationError):
    def __init__(self, cart_id: str) -> None:
        super().__init__(f"Cart is empty: {cart_id}", 3002)


class EligibilityError(AppError):
    def __init__(self, product_id: str, reason: str) -> None:
        self.product_id = product_id
        self.reason = reason
        super().__init__(3003, f"Product {product_id} is not purchasable: {reason}", 422)


class AddressRequiredError(ValidationError):
    def __init__(self) -> None:
        super().__init__("A shipping address is required for purchase requests", 3004)


class CartAlreadyConvertedError(ConflictError):
    def __init__(self, cart_id: str) -> None:
        super().__init__(f"Cart {cart_id} was already converted by another checkout", 3005)


class GroupIdTakenError(ConflictError):
    def __init__(self, group_id: str) -> None:
        super().__init__(f"Group id {group_id} is already used as an order number", 3006)


# --- 4xxx: Order ---

class InvalidTransitionError(ConflictError):
    def __init__(self, order_id: str, detail: str) -> None:
        super().__init__(f"Invalid transition for order {order_id}: {detail}", 4001)


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order not found: {order_id}", 4004)


# --- 5xxx: Payout ---

class PayoutNotFoundError(NotFoundError):
    def __init__(self, payout_id: str) -> None:
        super().__init__(f"Payout request not found: {payout_id}", 5001)


class PayoutStateError(ConflictError):
    def __init__(self, payout_id: str, status: str, action: str) -> None:
        super().__init__(f"Payout {payout_id} in status {status} cannot be {action}", 5002)


# --- 6xxx: Invoice ---

class InvoiceNotFoundError(NotFoundError):
    def __init__(self, ref: str) -> None:
        super().__init__(f"Invoice not found: {ref}", 6001)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
