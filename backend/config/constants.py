# backend/config/constants.py

# -----------------------------
# ORDER LIFECYCLE
# -----------------------------

STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_SHIPPED = "shipped"
STATUS_DELIVERED = "delivered"
STATUS_CANCELLED = "cancelled"

# status -> statuses it may move to (same-status requests are no-ops)
ORDER_STATUS_TRANSITIONS = {
    STATUS_PENDING: {STATUS_PROCESSING, STATUS_SHIPPED, STATUS_DELIVERED, STATUS_CANCELLED},
    STATUS_PROCESSING: {STATUS_SHIPPED, STATUS_DELIVERED, STATUS_CANCELLED},
    STATUS_SHIPPED: {STATUS_DELIVERED, STATUS_CANCELLED},
    STATUS_DELIVERED: set(),
    STATUS_CANCELLED: set(),
}

# -----------------------------
# PAYOUTS
# -----------------------------

ALLOWED_PAYOUT_METHODS = {"mpesa", "emola"}

PAYOUT_PENDING = "pending"
PAYOUT_COMPLETED = "completed"
PAYOUT_REJECTED = "rejected"

# -----------------------------
# LISTING LIMITS
# -----------------------------

NOTIFICATION_LIST_LIMIT = 20
ADMIN_LIST_LIMIT = 100

# SELLER ANALYTICS
ANALYTICS_WINDOW_DAYS = 30
ANALYTICS_TOP_PRODUCTS = 5
