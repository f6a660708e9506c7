"""Project document model: the logical schema shared by both file formats.

A project bundles portfolios, transactions, securities, cash accounts,
cash movements, FX rates, and settings. Records the persistence layer
never interprets (portfolios, transactions, cash data) stay plain dicts.
Securities, settings, and FX data are dataclasses because the store
splits and normalizes them.

Wire keys follow the camelCase layout of existing project files, e.g.
``cashAccounts``, ``fxData``, ``priceHistory``. A security's price
history is always a dict in memory; an empty history is omitted on the
wire, so "missing" and "empty" never differ for a consumer.

"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

from openfolio.errors import CorruptProjectError

CURRENT_PROJECT_VERSION = 1
DEFAULT_CURRENCY = "EUR"
DEFAULT_PROJECT_NAME = "My Portfolio"
DEFAULT_QUOTE_TYPE = "Stock"

# FX rates are quoted against this currency (ECB reference rates)
FX_BASE_CURRENCY = "EUR"

ISIN = str
PriceHistory = dict[str, float]

_SECURITY_KEYS = {"isin", "name", "symbol", "currency", "quoteType", "priceHistory"}
_SETTINGS_KEYS = {
    "baseCurrency",
    "taxRate",
    "wealthGoal",
    "wealthGoalCurrency",
    "wealthGoals",
}


def utcnow_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(tz=UTC).isoformat()


def new_project_id() -> str:
    """Generate a unique project identifier."""
    return str(uuid.uuid4())


def _expect_dict(value: Any, what: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        msg = f"Expected an object for {what}, got {type(value).__name__}"
        raise CorruptProjectError(msg)
    return value


def _expect_list(value: Any, what: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        msg = f"Expected a list for {what}, got {type(value).__name__}"
        raise CorruptProjectError(msg)
    return value


@dataclass
class Security:
    """Core metadata of a security plus its (heavy) price history.

    Attributes:
        isin: ISIN, also the key in ``ProjectDocument.securities``.
        name: Display name.
        currency: Trading currency.
        symbol: Resolved ticker symbol, if any.
        quote_type: Quote type tag, e.g. "ETF", "Stock", "Crypto".
        extra: All other metadata (market metrics, dividend data,
            symbol resolution status, ...), kept verbatim.
        price_history: Close price per date (YYYY-MM-DD).

    """

    isin: ISIN
    name: str
    currency: str = DEFAULT_CURRENCY
    symbol: str | None = None
    quote_type: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    price_history: PriceHistory = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any], isin: ISIN | None = None) -> Security:
        """Build a security from its wire representation.

        Args:
            data: Wire dict with camelCase keys.
            isin: Map key the entry was stored under; used when the
                entry itself carries no ``isin``.

        """
        data = _expect_dict(data, "security")
        resolved_isin = data.get("isin") or isin or ""
        return cls(
            isin=resolved_isin,
            name=data.get("name") or resolved_isin,
            currency=data.get("currency") or DEFAULT_CURRENCY,
            symbol=data.get("symbol"),
            quote_type=data.get("quoteType"),
            extra={k: v for k, v in data.items() if k not in _SECURITY_KEYS},
            price_history=dict(_expect_dict(data.get("priceHistory"), "priceHistory")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the wire representation (empty history omitted)."""
        out: dict[str, Any] = {"isin": self.isin, "name": self.name}
        if self.symbol is not None:
            out["symbol"] = self.symbol
        out["currency"] = self.currency
        if self.quote_type is not None:
            out["quoteType"] = self.quote_type
        out.update(self.extra)
        if self.price_history:
            out["priceHistory"] = self.price_history
        return out


@dataclass
class ProjectSettings:
    """User settings stored with the project.

    ``wealth_goals`` is the deprecated per-currency goal map. It is only
    populated for files written by old versions and is folded into
    ``wealth_goal``/``wealth_goal_currency`` on load.
    """

    base_currency: str = DEFAULT_CURRENCY
    tax_rate: float | None = None
    wealth_goal: float | None = None
    wealth_goal_currency: str | None = None
    wealth_goals: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ProjectSettings:
        data = _expect_dict(data, "settings")
        return cls(
            base_currency=data.get("baseCurrency") or DEFAULT_CURRENCY,
            tax_rate=data.get("taxRate"),
            wealth_goal=data.get("wealthGoal"),
            wealth_goal_currency=data.get("wealthGoalCurrency"),
            wealth_goals=dict(_expect_dict(data.get("wealthGoals"), "wealthGoals")),
            extra={k: v for k, v in data.items() if k not in _SETTINGS_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"baseCurrency": self.base_currency}
        if self.tax_rate is not None:
            out["taxRate"] = self.tax_rate
        if self.wealth_goal is not None:
            out["wealthGoal"] = self.wealth_goal
        if self.wealth_goal_currency is not None:
            out["wealthGoalCurrency"] = self.wealth_goal_currency
        if self.wealth_goals:
            out["wealthGoals"] = self.wealth_goals
        out.update(self.extra)
        return out


@dataclass
class FxData:
    """Daily FX rates per currency against the fixed base currency.

    ``rates[currency][date]`` is the amount of ``currency`` for one unit
    of the base currency. The rates map is heavy data; ``last_updated``
    and ``base_currency`` are light metadata.
    """

    base_currency: str = FX_BASE_CURRENCY
    rates: dict[str, PriceHistory] = field(default_factory=dict)
    last_updated: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> FxData:
        data = _expect_dict(data, "fxData")
        return cls(
            base_currency=data.get("baseCurrency") or FX_BASE_CURRENCY,
            rates=dict(_expect_dict(data.get("rates"), "fxData.rates")),
            last_updated=data.get("lastUpdated") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "baseCurrency": self.base_currency,
            "rates": self.rates,
            "lastUpdated": self.last_updated,
        }


@dataclass
class ProjectDocument:
    """The full logical state of one project."""

    id: str
    name: str
    created: str
    modified: str
    version: int = CURRENT_PROJECT_VERSION
    settings: ProjectSettings = field(default_factory=ProjectSettings)
    portfolios: list[dict[str, Any]] = field(default_factory=list)
    transactions: list[dict[str, Any]] = field(default_factory=list)
    securities: dict[ISIN, Security] = field(default_factory=dict)
    cash_accounts: list[dict[str, Any]] = field(default_factory=list)
    cash_movements: list[dict[str, Any]] = field(default_factory=list)
    fx_data: FxData = field(default_factory=FxData)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectDocument:
        """Build a document from its wire representation.

        Missing collections load as empty. ``cashAccounts`` and
        ``cashMovements`` are absent from files written before cash
        tracking existed.

        Raises:
            CorruptProjectError: If a field has the wrong JSON type.

        """
        data = _expect_dict(data, "project")
        securities = _expect_dict(data.get("securities"), "securities")
        now = utcnow_iso()
        try:
            version = int(data.get("version") or CURRENT_PROJECT_VERSION)
        except (TypeError, ValueError) as exc:
            msg = f"Invalid project version: {data.get('version')!r}"
            raise CorruptProjectError(msg) from exc
        return cls(
            version=version,
            id=data.get("id") or new_project_id(),
            name=data.get("name") or DEFAULT_PROJECT_NAME,
            created=data.get("created") or now,
            modified=data.get("modified") or now,
            settings=ProjectSettings.from_dict(data.get("settings")),
            portfolios=list(_expect_list(data.get("portfolios"), "portfolios")),
            transactions=list(_expect_list(data.get("transactions"), "transactions")),
            securities={
                isin: Security.from_dict(sec, isin) for isin, sec in securities.items()
            },
            cash_accounts=list(_expect_list(data.get("cashAccounts"), "cashAccounts")),
            cash_movements=list(
                _expect_list(data.get("cashMovements"), "cashMovements")
            ),
            fx_data=FxData.from_dict(data.get("fxData")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "id": self.id,
            "name": self.name,
            "created": self.created,
            "modified": self.modified,
            "settings": self.settings.to_dict(),
            "portfolios": self.portfolios,
            "transactions": self.transactions,
            "securities": {
                isin: sec.to_dict() for isin, sec in self.securities.items()
            },
            "cashAccounts": self.cash_accounts,
            "cashMovements": self.cash_movements,
            "fxData": self.fx_data.to_dict(),
        }

    def touched(self) -> ProjectDocument:
        """Return a copy with ``modified`` set to the current time."""
        return replace(self, modified=utcnow_iso())


def create_empty_project(name: str = DEFAULT_PROJECT_NAME) -> ProjectDocument:
    """Create a fresh, empty project.

    Args:
        name: Display name of the project.

    Returns:
        A new document with a unique id and empty collections.

    """
    now = utcnow_iso()
    return ProjectDocument(id=new_project_id(), name=name, created=now, modified=now)
