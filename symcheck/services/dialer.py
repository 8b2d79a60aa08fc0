"""Telephony capability used by the emergency panel's one-tap call action."""

import logging
import re
from typing import Protocol

from symcheck.exceptions import DialerError

logger = logging.getLogger(__name__)


class EmergencyDialer(Protocol):
    async def dial(self, number: str) -> str:
        """Start a call to ``number`` and return a reference for it."""
        ...


def tel_uri(number: str) -> str:
    """Build a tel: URI, keeping only digits and a leading +."""
    cleaned = re.sub(r"[^\d+]", "", number or "")
    if not cleaned.strip("+"):
        raise DialerError(f"Not a dialable number: {number!r}")
    return f"tel:{cleaned}"


class TelLinkDialer:
    """Hands the device a tel: link. Records every link it opened."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    async def dial(self, number: str) -> str:
        uri = tel_uri(number)
        self.calls.append(uri)
        logger.warning("Emergency call requested: %s", uri)
        return uri
