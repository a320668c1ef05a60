"""Date-keyed signal lookup."""

from __future__ import annotations

import logging
from typing import Dict, Hashable, Iterable

from .types import Signal

logger = logging.getLogger(__name__)

BUY = "buy"
SELL = "sell"
HOLD = "hold"


def build_signal_lookup(signals: Iterable[Signal]) -> Dict[Hashable, Signal]:
    """Map date -> actionable signal, dropping holds.

    If several actionable signals share a date the first one wins; the rest are
    logged and ignored.
    """
    lookup: Dict[Hashable, Signal] = {}
    for s in signals:
        if s.action == HOLD:
            continue
        if s.date in lookup:
            logger.warning(
                "Duplicate signal on %s: keeping %s, ignoring %s", s.date, lookup[s.date].action, s.action
            )
            continue
        lookup[s.date] = s
    return lookup
