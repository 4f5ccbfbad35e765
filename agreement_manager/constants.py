ROLE_ADMIN = "admin"
ROLE_USER = "user"

ROLES = (ROLE_ADMIN, ROLE_USER)

AGREEMENT_STATUSES = ("Drafted", "Registered", "Completed", "Cancelled")
DEFAULT_AGREEMENT_STATUS = "Drafted"

# Charge defaults pre-filled on the agreement entry form
DEFAULT_REGISTRATION_CHARGES = "1000.00"
DEFAULT_DHC = "300.00"

SNAPSHOT_VERSION = "1.0"
SUPPORTED_SNAPSHOT_VERSIONS = {"1.0"}

DEFAULT_PAGE_SIZE = 200
MAX_PAGE_SIZE = 1000
