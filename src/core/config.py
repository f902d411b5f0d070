"""Tolerant configuration parsers (core domain).

We keep config loading outside the core, but these parsers define the
shape the core expects so adapters and app layers can build safely. Every
parser degrades to "disabled" instead of raising, so one bad value only
switches off the component that needed it.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Iterable, List, Optional, Tuple, Union

from core.addresses import normalize_address

LOGGER = logging.getLogger(__name__)

RawList = Union[str, Iterable, None]


def _split(raw: RawList) -> List[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        items = raw.split(",")
    else:
        items = list(raw)
    return [str(item).strip() for item in items if str(item).strip()]


def parse_threshold(raw: Union[str, float, int, None]) -> Optional[float]:
    """Return a positive USD threshold, or None when missing/invalid."""

    if raw is None or (isinstance(raw, str) and not raw.strip()):
        LOGGER.warning("Large buy threshold not set - large buy alerts will be disabled")
        return None
    try:
        threshold = float(raw)
    except (TypeError, ValueError):
        LOGGER.warning("Invalid large buy threshold %r - large buy alerts will be disabled", raw)
        return None
    if threshold != threshold or threshold <= 0:
        LOGGER.warning("Invalid large buy threshold %r - large buy alerts will be disabled", raw)
        return None
    return threshold


def parse_interval(raw: Union[str, float, int, None], default: float, name: str = "polling") -> float:
    """Return a positive interval in seconds.

    A missing value falls back to ``default``. An invalid one yields 0.0, which
    polling components refuse to start with.
    """

    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    try:
        interval = float(raw)
    except (TypeError, ValueError):
        interval = 0.0
    if not math.isfinite(interval) or interval <= 0:
        LOGGER.warning("Invalid %s interval %r - component will be disabled", name, raw)
        return 0.0
    return interval


def parse_milestones(raw: RawList) -> Tuple[float, ...]:
    """Return an ascending, deduplicated tuple of positive milestones."""

    milestones = set()
    for item in _split(raw):
        try:
            value = float(item)
        except ValueError:
            LOGGER.warning("Invalid milestone skipped: %s", item)
            continue
        if value != value or value <= 0:
            LOGGER.warning("Invalid milestone skipped: %s", item)
            continue
        milestones.add(value)
    return tuple(sorted(milestones))


def parse_pool_accounts(raw: RawList) -> Tuple[str, ...]:
    """Return validated pool account addresses in configuration order."""

    accounts: List[str] = []
    for item in _split(raw):
        address = normalize_address(item)
        if address is None:
            LOGGER.warning("Invalid pool account address skipped: %s", item)
            continue
        if address not in accounts:
            accounts.append(address)
    return tuple(accounts)


def parse_datetime(raw: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 datetime; naive values are taken as local time."""

    if not raw or not str(raw).strip():
        return None
    text = str(raw).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        LOGGER.warning("Invalid datetime %r", raw)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed
