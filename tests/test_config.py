"""
Settings are read from plain environment variable names.
"""

from wordarena.core.config import Settings


def test_settings_read_unprefixed_environment(monkeypatch):
    monkeypatch.setenv("ROOM_IDLE_TIMEOUT_SECONDS", "90")
    monkeypatch.setenv("SURVIVAL_CAPACITY", "4")

    settings = Settings()
    assert settings.ROOM_IDLE_TIMEOUT_SECONDS == 90
    assert settings.SURVIVAL_CAPACITY == 4


def test_settings_defaults():
    settings = Settings()
    assert settings.BATTLE_CAPACITY == 2
    assert settings.PASS_RATIO == 0.2
