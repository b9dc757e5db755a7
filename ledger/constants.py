# Overview: Business constants shared by the API layer, services, and views.

from __future__ import annotations


# =============================================================================
# LOCATIONS (delivery zones; must match the backend enum exactly)
# =============================================================================

LOCATION_BANAI = "BANAI"
LOCATION_DOUBE_L = "DOUBE_L"
LOCATION_JOVIL_3 = "JOVIL_3"
LOCATION_LOWER_LOOB = "LOWER_LOOB"
LOCATION_PINATUBO = "PINATUBO"
LOCATION_PLASTIKAN = "PLASTIKAN"
LOCATION_SAN_ISIDRO = "SAN_ISIDRO"
LOCATION_UPPER_LOOB = "UPPER_LOOB"
LOCATION_URBAN = "URBAN"
LOCATION_WALK_IN = "WALK_IN"
LOCATION_ZUNIGA = "ZUNIGA"

# Delivery zones offered in dropdowns and filters (walk-in is selected separately)
LOCATIONS = [
    LOCATION_BANAI,
    LOCATION_DOUBE_L,
    LOCATION_JOVIL_3,
    LOCATION_LOWER_LOOB,
    LOCATION_PINATUBO,
    LOCATION_PLASTIKAN,
    LOCATION_SAN_ISIDRO,
    LOCATION_UPPER_LOOB,
    LOCATION_URBAN,
    LOCATION_ZUNIGA,
]

ALL_LOCATIONS = LOCATIONS + [LOCATION_WALK_IN]

# =============================================================================
# PAYMENT / COLLECTION STATUS
# =============================================================================

PAYMENT_TYPE_CASH = "CASH"
PAYMENT_TYPE_CREDIT = "CREDIT"
VALID_PAYMENT_TYPES = [PAYMENT_TYPE_CASH, PAYMENT_TYPE_CREDIT]

PAYMENT_METHOD_CASH = "CASH"
VALID_PAYMENT_METHODS = [PAYMENT_METHOD_CASH]

PAYMENT_STATUS_UNPAID = "UNPAID"
PAYMENT_STATUS_PARTIAL = "PARTIAL"
PAYMENT_STATUS_PAID = "PAID"
PAYMENT_STATUS_OVERDUE = "OVERDUE"
PAYMENT_STATUS_COLLECTION = "COLLECTION"

# Statuses that still carry an unpaid remainder
PENDING_PAYMENT_STATUSES = [
    PAYMENT_STATUS_UNPAID,
    PAYMENT_STATUS_PARTIAL,
    PAYMENT_STATUS_OVERDUE,
    PAYMENT_STATUS_COLLECTION,
]

COLLECTION_STATUS_ACTIVE = "ACTIVE"
COLLECTION_STATUS_OVERDUE = "OVERDUE"
COLLECTION_STATUS_SUSPENDED = "SUSPENDED"
VALID_COLLECTION_STATUSES = [
    COLLECTION_STATUS_ACTIVE,
    COLLECTION_STATUS_OVERDUE,
    COLLECTION_STATUS_SUSPENDED,
]

PAYMENT_STATUS_LABELS = {
    PAYMENT_STATUS_UNPAID: "Unpaid",
    PAYMENT_STATUS_PARTIAL: "Partial",
    PAYMENT_STATUS_PAID: "Paid",
    PAYMENT_STATUS_OVERDUE: "Overdue",
    PAYMENT_STATUS_COLLECTION: "Collection",
}

COLLECTION_STATUS_LABELS = {
    COLLECTION_STATUS_ACTIVE: "Active",
    COLLECTION_STATUS_OVERDUE: "Overdue",
    COLLECTION_STATUS_SUSPENDED: "Suspended",
}


# =============================================================================
# USERS
# =============================================================================

ROLE_ADMIN = "ADMIN"
ROLE_STAFF = "STAFF"
VALID_ROLES = [ROLE_ADMIN, ROLE_STAFF]

# Family operation: at most three accounts per deployment
MAX_USERS = 3
PASSCODE_LENGTH = 6


# =============================================================================
# CREDIT
# =============================================================================

CREDIT_WARNING_UTILIZATION = 80.0
CREDIT_BLOCK_UTILIZATION = 100.0


# =============================================================================
# SETTINGS
# =============================================================================

DEFAULT_SETTINGS = {
    "unitPrice": 25.0,
    "currency": "PHP",
    "businessName": None,
    "enableCustomPricing": True,
    "enableCreditFeature": True,
    "defaultCreditLimit": 1000.0,
    "daysBeforeOverdue": 30,
}


# =============================================================================
# TOKEN STORAGE KEYS
# =============================================================================

STORAGE_PREFIX = "ledger:"
ACCESS_TOKEN_KEY = f"{STORAGE_PREFIX}accessToken"
REFRESH_TOKEN_KEY = f"{STORAGE_PREFIX}refreshToken"


# =============================================================================
# DISPLAY / VALIDATION
# =============================================================================

CURRENCY_SYMBOL = "₱"
DATE_FORMAT = "%b %d, %Y"

MIN_UNIT_PRICE = 0.01
MAX_CUSTOMER_NAME_LENGTH = 100
MAX_BUSINESS_NAME_LENGTH = 100
MAX_SALE_NOTES_LENGTH = 500

# Sales can be edited/deleted for this many hours after creation
SALE_EDIT_WINDOW_HOURS = 24

MAX_TOP_CUSTOMERS = 6
