"""Open and serialize project files in either storage format.

Two physical formats hold the same project document:

- ``json``: the whole document as 2-space indented UTF-8 JSON.
- ``sqlite``: a single SQLite file managed by :class:`ProjectStore`,
  with lazily loaded heavy sections.

The format is chosen from the file name; when the name is not
conclusive on open, the SQLite header at byte 0 decides.

"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Literal

from openfolio.db.password import PasswordConfig, verify_password
from openfolio.db.project_store import KEEP_PASSWORD, ProjectStore
from openfolio.errors import (
    CorruptProjectError,
    InvalidPasswordError,
    PasswordRequiredError,
)
from openfolio.model.document import ProjectDocument
from openfolio.model.encoding import encode_pretty
from openfolio.model.wealth_goal import normalize_project_wealth_goal

logger = logging.getLogger(__name__)

StorageFormat = Literal["json", "sqlite"]

SQLITE_FILE_EXTENSIONS: tuple[str, ...] = (".openfolio", ".sqlite", ".sqlite3", ".db")
SQLITE_HEADER = b"SQLite format 3\x00"


@dataclass
class OpenedProject:
    """Result of opening a project file.

    Attributes:
        document: The normalized project document.
        format: Physical format the file was read from.
        store: Open SQLite store to reuse for saving, or None for JSON.
            The caller owns it and must close it.
        heavy_load_deferred: True if price histories and FX rates were
            not loaded yet (see ``ProjectStore.hydrate_heavy_data``).
        password_config: Password verifier of the file, if protected.

    """

    document: ProjectDocument
    format: StorageFormat
    store: ProjectStore | None = None
    heavy_load_deferred: bool = False
    password_config: PasswordConfig | None = None


@dataclass
class SavedProject:
    """Result of serializing a project for a file name.

    Attributes:
        document: The document that was serialized.
        data: SQLite file bytes or JSON text.
        store: The store used for saving (None for JSON).
        password_config: Password protection now in effect.

    """

    document: ProjectDocument
    data: bytes | str
    store: ProjectStore | None = None
    password_config: PasswordConfig | None = None


def is_sqlite_file_name(file_name: str | None) -> bool:
    """Return True if the name has one of the SQLite extensions."""
    return (file_name or "").lower().endswith(SQLITE_FILE_EXTENSIONS)


def has_sqlite_header(data: bytes) -> bool:
    """Return True if ``data`` starts with the SQLite file header."""
    return data[: len(SQLITE_HEADER)] == SQLITE_HEADER


def detect_storage_format(file_name: str | None, data: bytes = b"") -> StorageFormat:
    """Determine the physical format of a project file.

    Args:
        file_name: Name of the file; its extension wins if recognized.
        data: File contents, sniffed for the SQLite header otherwise.

    Returns:
        "sqlite" or "json".

    """
    if is_sqlite_file_name(file_name) or has_sqlite_header(data):
        return "sqlite"
    return "json"


def _open_sqlite(data: bytes, password: str | None) -> OpenedProject:
    store = ProjectStore.from_bytes(data)
    try:
        config = store.password_config
        if config is not None:
            if not password:
                msg = "This project is password protected"
                raise PasswordRequiredError(msg)
            if not verify_password(password, config):
                msg = "Invalid project password"
                raise InvalidPasswordError(msg)

        deferred = store.has_lazy_payload
        document = store.read_project_base(lazy=deferred)
    except Exception:
        store.close()
        raise

    return OpenedProject(
        document=document,
        format="sqlite",
        store=store,
        heavy_load_deferred=deferred,
        password_config=config,
    )


def _open_json(data: bytes) -> OpenedProject:
    parsed = json.loads(data.decode("utf-8"))
    if not isinstance(parsed, dict) or not {"version", "transactions"} <= parsed.keys():
        msg = "Invalid project file: expected an object with version and transactions"
        raise CorruptProjectError(msg)

    document = normalize_project_wealth_goal(ProjectDocument.from_dict(parsed))
    return OpenedProject(document=document, format="json")


def open_project_file(
    data: bytes,
    file_name: str | None,
    password: str | None = None,
) -> OpenedProject:
    """Open a project from raw file contents.

    Args:
        data: File contents.
        file_name: File name, used for format detection.
        password: Password for protected SQLite projects.

    Returns:
        The opened project. For SQLite files the result holds the open
        store, which must be reused for saving or closed.

    Raises:
        json.JSONDecodeError: If a JSON file is malformed.
        ProjectFileError: If the file cannot be opened (see
            :mod:`openfolio.errors` for the specific subclasses).

    """
    fmt = detect_storage_format(file_name, data)
    opened = _open_sqlite(data, password) if fmt == "sqlite" else _open_json(data)
    logger.info(
        "Opened %s project %r (%d bytes, heavy data deferred: %s)",
        fmt,
        opened.document.name,
        len(data),
        opened.heavy_load_deferred,
    )
    return opened


def serialize_project_for_file(
    file_name: str,
    document: ProjectDocument,
    store: ProjectStore | None = None,
    password_config: PasswordConfig | None = KEEP_PASSWORD,
) -> SavedProject:
    """Serialize a project in the format implied by ``file_name``.

    Args:
        file_name: Target file name.
        document: Project to serialize.
        store: Store from a previous open/save of this project. When
            missing, a blank store is created for SQLite targets.
        password_config: New password verifier, None to remove
            protection, or omitted to keep the store's current one.

    Returns:
        The serialized data together with the store that produced it.

    """
    if is_sqlite_file_name(file_name):
        target = store if store is not None else ProjectStore.create_empty()
        try:
            data = target.save_project(document, password_config=password_config)
        except Exception:
            if store is None:
                target.close()
            raise
        return SavedProject(
            document=document,
            data=data,
            store=target,
            password_config=target.password_config,
        )

    return SavedProject(document=document, data=encode_pretty(document.to_dict()))
