from enum import Enum

class UserRole(str, Enum):
    owner = "owner"
    admin = "admin"
    seller = "seller"

    OWNER = owner
    ADMIN = admin
    SELLER = seller

class ItemStatus(str, Enum):
    available = "available"
    pending = "pending"
    sold = "sold"

    AVAILABLE = available
    PENDING = pending
    SOLD = sold

class LeadStatus(str, Enum):
    pending = "pending"
    converted = "converted"

    PENDING = pending
    CONVERTED = converted

class PaymentStatus(str, Enum):
    pending = "pending"
    paid = "paid"

    PENDING = pending
    PAID = paid

class PaymentMethodType(str, Enum):
    cash = "cash"
    card = "card"
    transfer = "transfer"
    wallet = "wallet"
    other = "other"

    CASH = cash
    CARD = card
    TRANSFER = transfer
    WALLET = wallet
    OTHER = other

class PurchaseStatus(str, Enum):
    pending = "pending"
    processing = "processing"
    completed = "completed"

    PENDING = pending
    PROCESSING = processing
    COMPLETED = completed

class DeliveryKind(str, Enum):
    home_delivery = "home_delivery"
    store_pickup = "store_pickup"
    carrier_shipment = "carrier_shipment"

    HOME_DELIVERY = home_delivery
    STORE_PICKUP = store_pickup
    CARRIER_SHIPMENT = carrier_shipment

class DeliveryStatus(str, Enum):
    scheduled = "scheduled"
    in_transit = "in_transit"
    delivered = "delivered"
    cancelled = "cancelled"

    SCHEDULED = scheduled
    IN_TRANSIT = in_transit
    DELIVERED = delivered
    CANCELLED = cancelled
