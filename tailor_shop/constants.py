# constants.py
DATA_DIR = "data"
DB_FILE_NAME = "tailor_shop.db"

TABLE_RECORDS = "records"
TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1"

# ---- collections (keyed record store) ----
COL_STOCKS = "stocks"
COL_STOCK_TRANSACTIONS = "stock-transactions"
COL_CUSTOMERS = "customers"
COL_BILLS = "bills"
COL_ORGANIZATION = "organization"
COL_TAILOR_COUNTERS = "tailor-counters"
COL_ITEM_STATUS = "item-status"

# ---- stock transaction kinds ----
TXN_OPENING = "opening"
TXN_SALE = "sale"
TXN_ADJUSTMENT = "adjustment"

# ---- item work status ----
ITEM_IN_PROGRESS = "in_progress"
ITEM_READY = "ready"
ITEM_DELIVERED = "delivered"
ITEM_STATUSES: tuple[str, ...] = (ITEM_IN_PROGRESS, ITEM_READY, ITEM_DELIVERED)

ORGANIZATION_ID = "org-1"

LOW_STOCK_THRESHOLD = 10
