"""Read and write project files on disk.

Projects live wherever the user saves them; new ones default to::

    ~/.openfolio/
      projects/
        <name>.openfolio

"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from openfolio.db.project_store import KEEP_PASSWORD
from openfolio.fileio.project_file import (
    OpenedProject,
    SavedProject,
    open_project_file,
    serialize_project_for_file,
)

if TYPE_CHECKING:
    from openfolio.db.password import PasswordConfig
    from openfolio.db.project_store import ProjectStore
    from openfolio.model.document import ProjectDocument

logger = logging.getLogger(__name__)

# Default project directory (can be overridden for testing)
_DEFAULT_PROJECT_DIR = Path.home() / ".openfolio" / "projects"

DEFAULT_EXTENSION = ".openfolio"


def default_project_path(
    name: str,
    directory: str | Path | None = None,
    extension: str = DEFAULT_EXTENSION,
) -> Path:
    """Build the default save location for a project.

    Args:
        name: Project display name, used as the file stem.
        directory: Target directory. Defaults to ~/.openfolio/projects.
        extension: File extension, which also selects the format.

    Returns:
        Path of the project file (not created).

    """
    base = Path(directory) if directory is not None else _DEFAULT_PROJECT_DIR
    stem = "".join(c if c.isalnum() or c in " -_" else "_" for c in name).strip()
    return base / f"{stem or 'project'}{extension}"


def open_project_path(
    path: str | Path,
    password: str | None = None,
) -> OpenedProject:
    """Open a project file from disk.

    Args:
        path: Path to a .json/.parqet or SQLite project file.
        password: Password for protected SQLite projects.

    Returns:
        The opened project (see :func:`open_project_file`).

    """
    file_path = Path(path)
    return open_project_file(file_path.read_bytes(), file_path.name, password)


def save_project_path(
    path: str | Path,
    document: ProjectDocument,
    store: ProjectStore | None = None,
    password_config: PasswordConfig | None = KEEP_PASSWORD,
) -> SavedProject:
    """Stamp, serialize, and write a project file.

    Parent directories are created as needed.

    Args:
        path: Target path; its extension selects the format.
        document: Project to save. ``modified`` is set to now.
        store: Store from a previous open/save of this project.
        password_config: New password verifier, None to remove
            protection, or omitted to keep the current one.

    Returns:
        The save result; ``document`` is the stamped document.

    """
    file_path = Path(path)
    saved = serialize_project_for_file(
        file_path.name,
        document.touched(),
        store=store,
        password_config=password_config,
    )

    file_path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(saved.data, bytes):
        file_path.write_bytes(saved.data)
    else:
        file_path.write_text(saved.data, encoding="utf-8")

    logger.info("Project written to %s", file_path)
    return saved
