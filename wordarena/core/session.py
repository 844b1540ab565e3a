"""
session.py — Caller Identity
=============================
The surrounding application authenticates players; this service only
receives the resulting (player_id, display_name) pair. It is carried as an
explicit Session value into every room operation.

Display names travel percent-encoded in the X-Player-Name header since
header values must stay ASCII.
"""

from dataclasses import dataclass
from urllib.parse import quote, unquote

from fastapi import Header

from wordarena.core.config import get_settings
from wordarena.core.errors import SessionError


@dataclass(frozen=True)
class Session:
    player_id: str
    display_name: str
    academy_id: str = ""

    def headers(self) -> dict[str, str]:
        """Request headers that rebuild this session on the server side."""
        headers = {
            "X-Player-Id": self.player_id,
            "X-Player-Name": quote(self.display_name),
        }
        if self.academy_id:
            headers["X-Academy-Id"] = self.academy_id
        return headers


async def get_session(
    x_player_id: str | None = Header(default=None),
    x_player_name: str | None = Header(default=None),
    x_academy_id: str | None = Header(default=None),
) -> Session:
    player_id = (x_player_id or "").strip()
    if not player_id:
        raise SessionError("Missing X-Player-Id header")
    return Session(
        player_id=player_id,
        display_name=unquote(x_player_name or "").strip() or player_id,
        academy_id=(x_academy_id or "").strip() or get_settings().DEFAULT_ACADEMY_ID,
    )
