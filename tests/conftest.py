"""
Shared fixtures: a fresh room store, coordinator and catalog per test.
"""

import pytest

from wordarena.apps.rooms.models import GameMode
from wordarena.apps.rooms.service import create_room, get_room, join
from wordarena.core.catalog import DEFAULT_WORDS, InMemoryCatalog, set_catalog
from wordarena.core.config import get_settings
from wordarena.core.coordinator import coordinator
from wordarena.core.database import init_memory_db
from wordarena.core.session import Session


@pytest.fixture(autouse=True)
def store(monkeypatch):
    settings = get_settings()
    # hard-mode tests switch the clock back on themselves
    monkeypatch.setattr(settings, "ENABLE_TURN_CLOCK", False)

    db = init_memory_db()
    coordinator.reset()
    catalog = InMemoryCatalog()
    catalog.add_book(settings.DEFAULT_ACADEMY_ID, settings.DEFAULT_BOOK, DEFAULT_WORDS)
    set_catalog(catalog)
    yield db
    set_catalog(None)


@pytest.fixture
def host():
    return Session(player_id="u1", display_name="민준")


@pytest.fixture
def guest():
    return Session(player_id="u2", display_name="서연")


@pytest.fixture
def make_session():
    def _make(n: int) -> Session:
        return Session(player_id=f"p{n:02d}", display_name=f"Player {n}")
    return _make


@pytest.fixture
def battle_room(host, guest):
    """Coroutine factory: a waiting battle room with host and guest inside."""
    async def _make(**kwargs):
        room = await create_room(host, GameMode.BATTLE, "Battle", **kwargs)
        await join(room.id, guest)
        return await get_room(room.id)
    return _make


@pytest.fixture
def survival_room(host, guest):
    async def _make(**kwargs):
        room = await create_room(host, GameMode.SURVIVAL, "Survival", **kwargs)
        await join(room.id, guest)
        return await get_room(room.id)
    return _make
