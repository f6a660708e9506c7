"""Wealth goal settings migration.

Old project files stored one goal per currency (``wealthGoals``). The
current layout stores a single amount and currency. Normalization folds
the legacy map into the single pair and drops it; it runs on every load
and is idempotent.

"""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Any

from openfolio.model.document import ProjectDocument, ProjectSettings

# Legacy goals within this distance of the explicit goal are the same goal
_GOAL_MATCH_TOLERANCE = 0.5


def _is_valid_goal_amount(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value > 0
    )


def resolve_wealth_goal(settings: ProjectSettings) -> tuple[float | None, str | None]:
    """Determine the effective wealth goal amount and currency.

    Precedence:
        1. A valid ``wealth_goal`` with an explicit currency.
        2. A valid ``wealth_goal`` whose currency is taken from the
           matching legacy entry, else the base currency.
        3. The legacy entry for the base currency, else the first
           valid legacy entry.

    Args:
        settings: Project settings, possibly in the legacy layout.

    Returns:
        Tuple of (amount, currency); both None if no valid goal exists.

    """
    legacy = [
        (currency, amount)
        for currency, amount in settings.wealth_goals.items()
        if _is_valid_goal_amount(amount)
    ]
    explicit_currency = settings.wealth_goal_currency
    if not isinstance(explicit_currency, str) or not explicit_currency.strip():
        explicit_currency = None

    goal = settings.wealth_goal
    if goal is not None and _is_valid_goal_amount(goal):
        if explicit_currency:
            return goal, explicit_currency
        matched = next(
            (
                currency
                for currency, amount in legacy
                if abs(amount - goal) < _GOAL_MATCH_TOLERANCE
            ),
            None,
        )
        return goal, matched or settings.base_currency

    if legacy:
        by_base = [entry for entry in legacy if entry[0] == settings.base_currency]
        currency, amount = (by_base or legacy)[0]
        return amount, currency

    return None, None


def normalize_wealth_goal_settings(settings: ProjectSettings) -> ProjectSettings:
    """Return settings in the current single-goal layout."""
    amount, currency = resolve_wealth_goal(settings)
    return replace(
        settings,
        wealth_goal=amount,
        wealth_goal_currency=currency,
        wealth_goals={},
    )


def normalize_project_wealth_goal(project: ProjectDocument) -> ProjectDocument:
    """Apply the wealth goal migration to a whole document."""
    return replace(project, settings=normalize_wealth_goal_settings(project.settings))
