"""Project store: a whole project document in one in-memory SQLite file.

Scalar metadata lives in ``project_meta``; each logical section is one
compact JSON payload in ``project_sections``. The store supports:

- Lazy hydration: heavy sections (price history, FX rates) can be left
  unread on open and merged in later with :meth:`hydrate_heavy_data`.
- Snapshot diffing: a section is only rewritten when its payload differs
  from the last persisted one.
- Schema gating: files of another schema version, legacy layouts, and
  damaged files are told apart and rejected with distinct errors.

A store exclusively owns its connection from open to :meth:`close` and
is not meant to be shared between concurrent operations.

"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from openfolio.db.engine import SqliteEngine, get_engine
from openfolio.db.password import PASSWORD_ITERATIONS, PasswordConfig
from openfolio.db.payload import merge_securities, split_securities
from openfolio.db.schema import (
    ALL_SECTIONS,
    ALL_TABLES,
    EMPTY_PAYLOAD,
    HEAVY_SECTIONS,
    LEGACY_TABLES,
    META_CREATED,
    META_FX_BASE_CURRENCY,
    META_FX_LAST_UPDATED,
    META_ID,
    META_MODIFIED,
    META_NAME,
    META_PASSWORD_ENABLED,
    META_PASSWORD_HASH,
    META_PASSWORD_ITERATIONS,
    META_PASSWORD_SALT,
    META_SCHEMA_VERSION,
    META_SETTINGS,
    META_VERSION,
    SCHEMA_VERSION,
    SECTION_CASH_ACCOUNTS,
    SECTION_CASH_MOVEMENTS,
    SECTION_FX_RATES,
    SECTION_PORTFOLIOS,
    SECTION_PRICE_HISTORY,
    SECTION_SECURITIES_CORE,
    SECTION_TRANSACTIONS,
)
from openfolio.errors import (
    CorruptProjectError,
    LegacyFormatError,
    VersionMismatchError,
)
from openfolio.model.document import (
    CURRENT_PROJECT_VERSION,
    DEFAULT_PROJECT_NAME,
    FX_BASE_CURRENCY,
    FxData,
    ProjectDocument,
    ProjectSettings,
    Security,
    new_project_id,
    utcnow_iso,
)
from openfolio.model.encoding import encode_compact
from openfolio.model.wealth_goal import normalize_project_wealth_goal

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)

# Sentinel: keep the password protection the store currently has
KEEP_PASSWORD: Any = object()


def _to_text(value: Any) -> str | None:
    """Coerce a raw SQLite value to text."""
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


class ProjectStore:
    """SQLite-backed storage session for one open project."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        engine: SqliteEngine,
        *,
        is_new: bool,
    ) -> None:
        """Prepare a store on an open connection.

        Prefer :meth:`from_bytes` and :meth:`create_empty`.

        Args:
            conn: Autocommit connection; the store takes ownership.
            engine: Engine used to export the database.
            is_new: True for a blank database created by this process,
                which skips the schema version check.

        """
        self._conn = conn
        self._engine = engine
        self._section_snapshot: dict[str, str] = {}

        for ddl in ALL_TABLES:
            self._conn.execute(ddl)

        if not is_new:
            self._assert_schema_version()

        self._has_lazy_payload = self._detect_heavy_payload()
        self._heavy_data_hydrated = not self._has_lazy_payload
        self._password_config = self._read_password_config()
        self._prime_snapshots()

    @classmethod
    def from_bytes(
        cls, data: bytes, engine: SqliteEngine | None = None
    ) -> ProjectStore:
        """Open a store from the contents of a project file.

        Args:
            data: Raw file bytes. Empty bytes open a blank store.
            engine: Engine to use; defaults to the shared engine.

        Returns:
            Open store; the caller must close it.

        Raises:
            CorruptProjectError: If the bytes are not a usable SQLite
                database or the file is incomplete.
            LegacyFormatError: If the file uses the old per-table layout.
            VersionMismatchError: If the schema version is unsupported.

        """
        engine = engine or get_engine()
        try:
            conn = engine.connect(data)
        except sqlite3.DatabaseError as exc:
            msg = f"Not a readable SQLite project file: {exc}"
            raise CorruptProjectError(msg) from exc

        try:
            return cls(conn, engine, is_new=False)
        except sqlite3.DatabaseError as exc:
            conn.close()
            msg = f"Not a readable SQLite project file: {exc}"
            raise CorruptProjectError(msg) from exc
        except Exception:
            conn.close()
            raise

    @classmethod
    def create_empty(cls, engine: SqliteEngine | None = None) -> ProjectStore:
        """Create a blank store for a project not yet saved as SQLite."""
        engine = engine or get_engine()
        conn = engine.connect()
        try:
            return cls(conn, engine, is_new=True)
        except Exception:
            conn.close()
            raise

    # ── state ─────────────────────────────────────────────────────

    @property
    def has_lazy_payload(self) -> bool:
        """Whether heavy sections hold data beyond an empty object."""
        return self._has_lazy_payload

    @property
    def is_hydrated(self) -> bool:
        """Whether the in-memory document is known to include heavy data."""
        return self._heavy_data_hydrated

    @property
    def password_config(self) -> PasswordConfig | None:
        return self._password_config

    # ── low-level helpers ─────────────────────────────────────────

    def _query_value(self, sql: str, params: tuple[Any, ...] = ()) -> Any:
        row = self._conn.execute(sql, params).fetchone()
        return row[0] if row else None

    def _scalar_count(self, sql: str) -> int:
        value = self._query_value(sql)
        try:
            return int(value or 0)
        except (TypeError, ValueError):
            return 0

    def _table_exists(self, name: str) -> bool:
        row = self._query_value(
            "SELECT 1 FROM sqlite_master WHERE type = ? AND name = ? LIMIT 1",
            ("table", name),
        )
        return row is not None

    def _get_meta(self, key: str) -> str | None:
        return _to_text(
            self._query_value("SELECT value FROM project_meta WHERE key = ?", (key,))
        )

    def _section_payload_length(self, name: str) -> int:
        value = self._query_value(
            "SELECT LENGTH(payload) FROM project_sections WHERE name = ?", (name,)
        )
        return int(value or 0)

    def _detect_heavy_payload(self) -> bool:
        return any(
            self._section_payload_length(name) > len(EMPTY_PAYLOAD)
            for name in HEAVY_SECTIONS
        )

    def _prime_snapshots(self) -> None:
        self._section_snapshot = {
            str(name): _to_text(payload) or ""
            for name, payload in self._conn.execute(
                "SELECT name, payload FROM project_sections"
            )
        }

    # ── integrity ─────────────────────────────────────────────────

    def _assert_schema_version(self) -> None:
        """Gate access on the stored schema version.

        A missing version is accepted only when the file looks blank or
        already holds sections in the current layout; the version is
        then written. Anything else is rejected as legacy or corrupt.

        Raises:
            VersionMismatchError: If another schema version is stored.
            LegacyFormatError: If old per-entity tables are present.
            CorruptProjectError: If the file has metadata but neither
                a version nor any recognizable structure.

        """
        version = self._get_meta(META_SCHEMA_VERSION)
        if version:
            if version != SCHEMA_VERSION:
                raise VersionMismatchError(version, SCHEMA_VERSION)
            return

        meta_rows = self._scalar_count("SELECT COUNT(*) FROM project_meta")
        section_rows = self._scalar_count("SELECT COUNT(*) FROM project_sections")

        if meta_rows == 0 or section_rows > 0:
            logger.warning(
                "Project file has no schema version (%d meta rows, %d sections); "
                "marking as v%s",
                meta_rows,
                section_rows,
                SCHEMA_VERSION,
            )
            self._upsert_meta(META_SCHEMA_VERSION, SCHEMA_VERSION)
            return

        if any(self._table_exists(name) for name in LEGACY_TABLES):
            msg = (
                "Unsupported legacy SQLite project format. "
                "Open it with a previous version and save it again."
            )
            raise LegacyFormatError(msg)

        msg = "SQLite project file is incomplete or corrupted"
        raise CorruptProjectError(msg)

    def _read_password_config(self) -> PasswordConfig | None:
        if self._get_meta(META_PASSWORD_ENABLED) != "1":
            return None

        salt = self._get_meta(META_PASSWORD_SALT)
        hash_ = self._get_meta(META_PASSWORD_HASH)
        raw_iterations = self._get_meta(META_PASSWORD_ITERATIONS) or str(
            PASSWORD_ITERATIONS
        )
        try:
            iterations = int(raw_iterations)
        except ValueError:
            iterations = 0

        if not salt or not hash_ or iterations <= 0:
            msg = "Invalid password metadata in project file"
            raise CorruptProjectError(msg)
        return PasswordConfig(salt=salt, hash=hash_, iterations=iterations)

    # ── reading ───────────────────────────────────────────────────

    def read_meta(self) -> dict[str, str]:
        """Return all metadata rows as a dict."""
        return {
            str(key): _to_text(value) or ""
            for key, value in self._conn.execute("SELECT key, value FROM project_meta")
        }

    def _read_section(self, name: str, expected: type[Any]) -> Any:
        """Decode a section payload, or an empty ``expected`` if absent."""
        payload = _to_text(
            self._query_value(
                "SELECT payload FROM project_sections WHERE name = ?", (name,)
            )
        )
        if not payload:
            return expected()
        try:
            value = json.loads(payload)
        except json.JSONDecodeError as exc:
            msg = f"Section '{name}' does not contain valid JSON"
            raise CorruptProjectError(msg) from exc
        if not isinstance(value, expected):
            msg = f"Section '{name}' has unexpected type {type(value).__name__}"
            raise CorruptProjectError(msg)
        return value

    def _read_series_section(self, name: str) -> dict[str, dict[str, Any]]:
        """Decode a heavy section: a map of per-date series keyed by id."""
        section = self._read_section(name, dict)
        for key, series in section.items():
            if not isinstance(series, dict):
                msg = (
                    f"Section '{name}' entry '{key}' has unexpected type "
                    f"{type(series).__name__}"
                )
                raise CorruptProjectError(msg)
        return section

    def read_project_base(self, lazy: bool = False) -> ProjectDocument:
        """Read the project, optionally without heavy sections.

        A full read loads the heavy sections too, so the store counts as
        hydrated afterwards and the next save writes them.

        Args:
            lazy: If True, price histories and FX rates come back empty;
                use :meth:`hydrate_heavy_data` to load them later.

        Returns:
            The normalized project document.

        Raises:
            CorruptProjectError: If metadata or a section is malformed.

        """
        meta = self.read_meta()

        settings_json = meta.get(META_SETTINGS)
        try:
            settings_raw = json.loads(settings_json) if settings_json else None
        except json.JSONDecodeError as exc:
            msg = "Project settings metadata does not contain valid JSON"
            raise CorruptProjectError(msg) from exc

        raw_version = meta.get(META_VERSION) or str(CURRENT_PROJECT_VERSION)
        try:
            version = int(raw_version)
        except ValueError as exc:
            msg = f"Invalid project version in metadata: {raw_version!r}"
            raise CorruptProjectError(msg) from exc

        core = {
            isin: Security.from_dict(data, isin)
            for isin, data in self._read_section(SECTION_SECURITIES_CORE, dict).items()
        }
        if lazy:
            price_history: dict[str, dict[str, Any]] = {}
            fx_rates: dict[str, dict[str, Any]] = {}
        else:
            price_history = self._read_series_section(SECTION_PRICE_HISTORY)
            fx_rates = self._read_series_section(SECTION_FX_RATES)

        now = utcnow_iso()
        project = ProjectDocument(
            version=version,
            id=meta.get(META_ID) or new_project_id(),
            name=meta.get(META_NAME) or DEFAULT_PROJECT_NAME,
            created=meta.get(META_CREATED) or now,
            modified=meta.get(META_MODIFIED) or now,
            settings=ProjectSettings.from_dict(settings_raw),
            portfolios=self._read_section(SECTION_PORTFOLIOS, list),
            transactions=self._read_section(SECTION_TRANSACTIONS, list),
            securities=merge_securities(core, price_history),
            cash_accounts=self._read_section(SECTION_CASH_ACCOUNTS, list),
            cash_movements=self._read_section(SECTION_CASH_MOVEMENTS, list),
            fx_data=FxData(
                base_currency=FX_BASE_CURRENCY,
                rates=fx_rates,
                last_updated=meta.get(META_FX_LAST_UPDATED, ""),
            ),
        )
        if not lazy:
            self._heavy_data_hydrated = True
        return normalize_project_wealth_goal(project)

    def hydrate_heavy_data(self, base: ProjectDocument) -> ProjectDocument:
        """Merge the stored heavy sections into a lazily read document.

        Args:
            base: Document returned by ``read_project_base(lazy=True)``.

        Returns:
            ``base`` itself when the store has no lazy payload, else a
            copy carrying the stored price histories and FX rates.

        """
        if not self._has_lazy_payload:
            return base

        price_history = self._read_series_section(SECTION_PRICE_HISTORY)
        fx_rates = self._read_series_section(SECTION_FX_RATES)
        self._heavy_data_hydrated = True
        logger.debug(
            "Hydrated price history for %d securities and %d FX currencies",
            len(price_history),
            len(fx_rates),
        )

        return replace(
            base,
            securities=merge_securities(base.securities, price_history),
            fx_data=replace(base.fx_data, rates=fx_rates),
        )

    # ── writing ───────────────────────────────────────────────────

    def _upsert_meta(self, key: str, value: str) -> None:
        self._conn.execute(
            "INSERT INTO project_meta (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
        )

    def _write_section(self, name: str, payload: str) -> None:
        self._conn.execute(
            "INSERT INTO project_sections (name, payload) VALUES (?, ?) "
            "ON CONFLICT(name) DO UPDATE SET payload = excluded.payload",
            (name, payload),
        )

    def _upsert_section(self, name: str, payload: str) -> bool:
        """Write a section unless it equals the last persisted payload.

        Returns:
            True if the section was physically written.

        """
        if self._section_snapshot.get(name) == payload:
            logger.debug("Section %s unchanged, skipping write", name)
            return False
        self._write_section(name, payload)
        self._section_snapshot[name] = payload
        return True

    def save_project(
        self,
        project: ProjectDocument,
        password_config: PasswordConfig | None = KEEP_PASSWORD,
    ) -> bytes:
        """Persist a document and export the database file.

        When the store holds heavy data that was never hydrated, the
        in-memory document lacks it, so the price history section is
        left untouched and FX rates are only written if non-empty.

        Args:
            project: Document to persist.
            password_config: New password verifier, None to remove
                protection, or omitted to keep the current one.

        Returns:
            Bytes of the complete SQLite file.

        Raises:
            ValueError: If the document cannot be encoded as JSON.
            sqlite3.Error: If a write fails. The transaction is rolled
                back and the store is left as it was.

        """
        preserve_heavy = self._has_lazy_payload and not self._heavy_data_hydrated
        effective_password = (
            self._password_config
            if password_config is KEEP_PASSWORD
            else password_config
        )

        core, price_history = split_securities(project.securities)
        meta = {
            META_SCHEMA_VERSION: SCHEMA_VERSION,
            META_VERSION: str(project.version),
            META_ID: project.id,
            META_NAME: project.name,
            META_CREATED: project.created,
            META_MODIFIED: project.modified,
            META_SETTINGS: encode_compact(project.settings.to_dict()),
            META_FX_BASE_CURRENCY: FX_BASE_CURRENCY,
            META_FX_LAST_UPDATED: project.fx_data.last_updated or "",
            META_PASSWORD_ENABLED: "1" if effective_password else "0",
            META_PASSWORD_SALT: effective_password.salt if effective_password else "",
            META_PASSWORD_HASH: effective_password.hash if effective_password else "",
            META_PASSWORD_ITERATIONS: (
                str(effective_password.iterations) if effective_password else ""
            ),
        }
        payloads = {
            SECTION_PORTFOLIOS: encode_compact(project.portfolios),
            SECTION_TRANSACTIONS: encode_compact(project.transactions),
            SECTION_CASH_ACCOUNTS: encode_compact(project.cash_accounts),
            SECTION_CASH_MOVEMENTS: encode_compact(project.cash_movements),
            SECTION_SECURITIES_CORE: encode_compact(
                {isin: sec.to_dict() for isin, sec in core.items()}
            ),
            SECTION_PRICE_HISTORY: encode_compact(price_history),
            SECTION_FX_RATES: encode_compact(project.fx_data.rates),
        }
        skipped: set[str] = set()
        if preserve_heavy:
            logger.debug("Heavy data not hydrated, keeping stored price history")
            skipped.add(SECTION_PRICE_HISTORY)
            if payloads[SECTION_FX_RATES] == EMPTY_PAYLOAD:
                skipped.add(SECTION_FX_RATES)
        sections = [
            (name, payloads[name]) for name in ALL_SECTIONS if name not in skipped
        ]

        snapshot_before = dict(self._section_snapshot)
        self._conn.execute("BEGIN")
        try:
            for key, value in meta.items():
                self._upsert_meta(key, value)
            written = [
                name
                for name, payload in sections
                if self._upsert_section(name, payload)
            ]
            self._conn.execute("COMMIT")
        except Exception:
            if self._conn.in_transaction:
                self._conn.execute("ROLLBACK")
            self._section_snapshot = snapshot_before
            raise

        self._has_lazy_payload = self._detect_heavy_payload()
        if not preserve_heavy or not self._has_lazy_payload:
            self._heavy_data_hydrated = True
        self._password_config = effective_password

        self._conn.execute("VACUUM")
        data = self._engine.export(self._conn)
        logger.info(
            "Saved project %s: %d of %d sections written, %d bytes",
            project.id,
            len(written),
            len(sections),
            len(data),
        )
        return data

    # ── lifecycle ─────────────────────────────────────────────────

    def close(self) -> None:
        """Release the underlying database connection."""
        self._conn.close()

    def __enter__(self) -> ProjectStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
