"""Vulture whitelist: references that look unused but are reached indirectly.

Pytest fixtures are injected by name and context-manager hooks are
called by ``with``; vulture cannot see either.

Usage:
    cd python && uv run vulture openfolio tests vulture_whitelist.py
"""

# ── Pytest fixtures (injected by pytest, never called directly) ──
from tests.conftest import raw_sqlite  # noqa: F401
from tests.conftest import sample_document  # noqa: F401
from tests.db.engine_test import fresh_engine  # noqa: F401
from tests.db.project_store_test import saved_bytes  # noqa: F401
from tests.log_config_test import restore_root_logger  # noqa: F401

# ── Context-manager protocol (called by ``with``) ──
from openfolio.db.project_store import ProjectStore  # noqa: F401

ProjectStore.__exit__  # noqa: B018
