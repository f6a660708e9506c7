"""Split securities into core metadata and heavy price histories.

Price histories dominate file size, so the SQLite store keeps them in a
separate section that can be loaded lazily. These functions are pure;
``merge_securities(*split_securities(s)) == s`` holds for any map.

"""

from __future__ import annotations

from dataclasses import replace

from openfolio.model.document import (
    DEFAULT_CURRENCY,
    DEFAULT_QUOTE_TYPE,
    ISIN,
    PriceHistory,
    Security,
)


def split_securities(
    securities: dict[ISIN, Security],
) -> tuple[dict[ISIN, Security], dict[ISIN, PriceHistory]]:
    """Separate price histories from security metadata.

    Args:
        securities: Securities keyed by ISIN.

    Returns:
        Tuple of (core, price_history). ``core`` contains every input
        ISIN with an empty history; ``price_history`` contains only the
        ISINs whose history is non-empty.

    """
    core: dict[ISIN, Security] = {}
    price_history: dict[ISIN, PriceHistory] = {}

    for isin, security in securities.items():
        core[isin] = replace(security, price_history={})
        if security.price_history:
            price_history[isin] = dict(security.price_history)

    return core, price_history


def merge_securities(
    core: dict[ISIN, Security],
    price_history: dict[ISIN, PriceHistory],
) -> dict[ISIN, Security]:
    """Reattach price histories to security metadata.

    Securities without an entry in ``price_history`` are returned as
    given. A history without matching metadata gets a placeholder
    security named after its ISIN, so no price data is dropped.

    Args:
        core: Security metadata keyed by ISIN.
        price_history: Price histories keyed by ISIN.

    Returns:
        Merged securities keyed by ISIN.

    """
    result: dict[ISIN, Security] = {}

    for isin, security in core.items():
        history = price_history.get(isin)
        if history:
            security = replace(security, price_history=dict(history))
        result[isin] = security

    for isin, history in price_history.items():
        if isin in result:
            continue
        result[isin] = Security(
            isin=isin,
            name=isin,
            symbol=isin,
            currency=DEFAULT_CURRENCY,
            quote_type=DEFAULT_QUOTE_TYPE,
            price_history=dict(history),
        )

    return result
