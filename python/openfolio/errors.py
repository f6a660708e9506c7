"""Exception types raised by the OpenFolio persistence layer.

Every failure to open a project file surfaces as a subclass of
:class:`ProjectFileError`, so callers can catch the whole family or
discriminate precisely between the failure modes below.

"""

from __future__ import annotations


class ProjectFileError(ValueError):
    """Base class for project files that cannot be opened as-is."""


class VersionMismatchError(ProjectFileError):
    """The store carries a schema version other than the supported one."""

    def __init__(self, found: str, expected: str) -> None:
        self.found = found
        self.expected = expected
        super().__init__(
            f"File format version mismatch: found v{found}, expected v{expected}"
        )


class LegacyFormatError(ProjectFileError):
    """The store uses an old physical layout that must be re-saved."""


class CorruptProjectError(ProjectFileError):
    """The file is incomplete, corrupted, or not a project at all."""


class PasswordRequiredError(ProjectFileError):
    """The project is password protected and no password was given."""


class InvalidPasswordError(ProjectFileError):
    """The given password does not match the project's password hash."""


class EngineUnavailableError(RuntimeError):
    """The embedded SQLite engine could not be initialized."""
