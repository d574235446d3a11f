"""
Per-request models for backend round trips.

Both are created fresh for each backend call and dropped once the
request they belong to is answered.
"""

from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Optional

import httpx


@dataclass
class SubRequest:
    """A request the gate sends to the wwwhisper backend."""

    method: str
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    params: Optional[Dict[str, str]] = None
    body: Optional[AsyncIterator[bytes]] = None


@dataclass
class AuthOutcome:
    """
    Result of an is-authorized query.

    On denial ``response`` is still open so its raw body can be relayed
    to the client; on grant it has already been closed.
    """

    status_code: int
    headers: httpx.Headers
    response: httpx.Response
    user: Optional[str] = None

    @property
    def granted(self) -> bool:
        return self.status_code == 200
