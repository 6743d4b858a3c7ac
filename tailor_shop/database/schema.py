import sqlite3

from ..constants import TABLE_RECORDS

SQL = f"""
/* ======================== KEYED RECORD STORE ======================== */

/* one row per record; body is the JSON document, seq keeps insertion order */
CREATE TABLE IF NOT EXISTS {TABLE_RECORDS} (
    seq        INTEGER PRIMARY KEY AUTOINCREMENT,
    collection TEXT NOT NULL,
    id         TEXT NOT NULL,
    body       TEXT NOT NULL CHECK (json_valid(body)),
    UNIQUE (collection, id)
);

CREATE INDEX IF NOT EXISTS idx_records_collection_seq
ON {TABLE_RECORDS}(collection, seq);

/* bills are looked up by customer when offering measurement carry-forward */
CREATE INDEX IF NOT EXISTS idx_records_bill_customer
ON {TABLE_RECORDS}(json_extract(body, '$.customerId'))
WHERE collection = 'bills';

/* ledger reconstruction reads every movement of one stock item */
CREATE INDEX IF NOT EXISTS idx_records_stock_txn
ON {TABLE_RECORDS}(json_extract(body, '$.stockId'))
WHERE collection = 'stock-transactions';
"""


def init_schema(conn: sqlite3.Connection) -> None:
    """Apply the schema; safe to run on every start (CREATE IF NOT EXISTS)."""
    conn.executescript(SQL)
