"""SQLite schema for the setup store.

Each setup is kept as a JSON document, with the columns the store filters and
orders on copied out next to it.
"""

CREATE_TABLES = """
CREATE TABLE IF NOT EXISTS setups (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    status TEXT NOT NULL,
    pair TEXT NOT NULL,
    date TEXT,
    document TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_setups_user ON setups(user_id);
CREATE INDEX IF NOT EXISTS idx_setups_user_created ON setups(user_id, created_at);
CREATE INDEX IF NOT EXISTS idx_setups_status ON setups(status);
"""
