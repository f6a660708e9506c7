"""SQLite schema definitions for OpenFolio project files.

A project file holds two generic tables:
- project_meta: Scalar key/value metadata (ids, timestamps, settings)
- project_sections: One compact JSON payload per logical section

The logical layout is versioned by the ``schema_version`` meta key.
Version 1 files used one physical table per entity; their table names
are listed in ``LEGACY_TABLES`` so they can be recognized and rejected.

"""

from __future__ import annotations

SCHEMA_VERSION = "2"

# ── Tables ──

CREATE_PROJECT_META = """
CREATE TABLE IF NOT EXISTS project_meta (
    key          TEXT PRIMARY KEY,
    value        TEXT NOT NULL
);
"""

CREATE_PROJECT_SECTIONS = """
CREATE TABLE IF NOT EXISTS project_sections (
    name         TEXT PRIMARY KEY,
    payload      TEXT NOT NULL
);
"""

# All DDL statements in creation order
ALL_TABLES: list[str] = [
    CREATE_PROJECT_META,
    CREATE_PROJECT_SECTIONS,
]

# ── Sections ──

SECTION_PORTFOLIOS = "portfolios"
SECTION_TRANSACTIONS = "transactions"
SECTION_CASH_ACCOUNTS = "cash_accounts"
SECTION_CASH_MOVEMENTS = "cash_movements"
SECTION_SECURITIES_CORE = "securities_core"
SECTION_PRICE_HISTORY = "security_price_history"
SECTION_FX_RATES = "fx_rates"

LIGHT_SECTIONS: tuple[str, ...] = (
    SECTION_PORTFOLIOS,
    SECTION_TRANSACTIONS,
    SECTION_CASH_ACCOUNTS,
    SECTION_CASH_MOVEMENTS,
    SECTION_SECURITIES_CORE,
)

HEAVY_SECTIONS: tuple[str, ...] = (
    SECTION_PRICE_HISTORY,
    SECTION_FX_RATES,
)

ALL_SECTIONS: tuple[str, ...] = LIGHT_SECTIONS + HEAVY_SECTIONS

# Encoded length of an empty JSON object; longer heavy payloads carry data
EMPTY_PAYLOAD = "{}"

# ── Meta keys ──

META_SCHEMA_VERSION = "schema_version"
META_VERSION = "version"
META_ID = "id"
META_NAME = "name"
META_CREATED = "created"
META_MODIFIED = "modified"
META_SETTINGS = "settings_json"
META_FX_BASE_CURRENCY = "fx_base_currency"
META_FX_LAST_UPDATED = "fx_last_updated"
META_PASSWORD_ENABLED = "password_enabled"
META_PASSWORD_SALT = "password_salt"
META_PASSWORD_HASH = "password_hash"
META_PASSWORD_ITERATIONS = "password_iterations"

# Table names of the version 1 (one table per entity) layout
LEGACY_TABLES: tuple[str, ...] = (
    "portfolios",
    "transactions",
    "securities",
    "cash_accounts",
    "cash_movements",
    "fx_rates",
    "security_price_history",
    "fx_rate_points",
)
