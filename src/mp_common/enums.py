"""Global enums: must match DB CHECK constraints exactly.

Each order axis is a closed set; "no value yet" on the payment and shipment axes is NULL
in the database and ``None`` in Python, never an enum member.
"""

from enum import Enum


class OrderStatus(str, Enum):
    ORDER_RECEIVED = "order_received"
    VENDOR_APPROVED = "vendor_approved"
    VENDOR_REJECTED = "vendor_rejected"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class ShipmentStatus(str, Enum):
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"


class OrderType(str, Enum):
    """Compliance routing: direct checkout vs manual purchase request."""
    DIRECT = "direct"
    REQUEST = "request"


class CartStatus(str, Enum):
    ACTIVE = "active"
    CONVERTED = "converted"


class LedgerCategory(str, Enum):
    VENDOR_EARNING = "vendor_earning"
    COMMISSION = "commission"
    PAYOUT = "payout"
    REFUND = "refund"


class LedgerEntryType(str, Enum):
    # Credit into the locked or available bucket
    CREDIT = "CREDIT"
    # Unlock pair: locked -X, available +X
    UNLOCK_RELEASE = "UNLOCK_RELEASE"
    UNLOCK_RECEIPT = "UNLOCK_RECEIPT"
    # Compensating removal of a locked credit (order rejected after locking)
    REVERSAL = "REVERSAL"
    # Payout (available bucket only)
    PAYOUT_DEBIT = "PAYOUT_DEBIT"


class InvoiceType(str, Enum):
    VENDOR_TO_ADMIN = "vendor_to_admin"
    ADMIN_TO_CUSTOMER = "admin_to_customer"


class InvoicePaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"


class PayoutStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    REJECTED = "rejected"


class PaymentState(str, Enum):
    """Payment state reported by the gateway webhook."""
    PAID = "paid"
    FAILED = "failed"


class TrackingEventType(str, Enum):
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"


class ActorRole(str, Enum):
    BUYER = "buyer"
    VENDOR = "vendor"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"
    SYSTEM = "system"
