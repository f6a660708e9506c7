"""JSON encoding shared by the JSON file format and store sections.

Price and rate histories often arrive from pandas/NumPy based market
data code, so NumPy scalars and arrays are converted transparently.
NaN and infinity are rejected: both file formats must stay readable by
strict JSON parsers.

"""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any

import numpy as np


class _ProjectEncoder(json.JSONEncoder):
    """JSON encoder that handles NumPy types and dates."""

    def default(self, o: Any) -> Any:
        """Convert non-serializable types to JSON-safe values."""
        if isinstance(o, np.ndarray):
            return o.tolist()
        if isinstance(o, np.integer):
            return int(o)
        if isinstance(o, np.floating):
            return float(o)
        if isinstance(o, np.bool_):
            return bool(o)
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        return super().default(o)


def encode_compact(value: Any) -> str:
    """Encode a section payload as compact JSON.

    The output is deterministic for equal inputs (insertion order is
    kept), which is what snapshot diffing relies on.
    """
    return json.dumps(
        value,
        cls=_ProjectEncoder,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def encode_pretty(value: Any) -> str:
    """Encode a whole document as 2-space indented JSON."""
    return json.dumps(
        value,
        cls=_ProjectEncoder,
        indent=2,
        ensure_ascii=False,
        allow_nan=False,
    )
