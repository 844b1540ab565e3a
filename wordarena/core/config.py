from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ═══════════════════════════════════════════════════
    # FastAPI Application Settings
    # ═══════════════════════════════════════════════════
    APP_NAME: str = "Word Arena"
    VERSION: str = "0.1.0"
    ENV: str = "development"  # "development" | "production"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # ═══════════════════════════════════════════════════
    # Server Configuration
    # ═══════════════════════════════════════════════════
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # ═══════════════════════════════════════════════════
    # Room Store
    # ═══════════════════════════════════════════════════
    USE_IN_MEMORY_DB: bool = True
    SUBSCRIPTION_QUEUE_SIZE: int = 256

    # ═══════════════════════════════════════════════════
    # Vocabulary Catalog (external word-list service)
    # ═══════════════════════════════════════════════════
    USE_IN_MEMORY_CATALOG: bool = True
    CATALOG_API_URL: str = "http://localhost:9000"
    CATALOG_API_KEY: str = ""
    CATALOG_TIMEOUT_SECONDS: float = 10.0
    DEFAULT_ACADEMY_ID: str = "academy_default"
    DEFAULT_BOOK: str = "기본"

    # ═══════════════════════════════════════════════════
    # Game Rules & Limits
    # ═══════════════════════════════════════════════════
    BATTLE_CAPACITY: int = 2
    SURVIVAL_CAPACITY: int = 10
    MIN_PLAYERS_TO_START: int = 2
    BATTLE_SESSION_LENGTH: int = 10
    SURVIVAL_SESSION_LENGTH: int = 50

    CORRECT_REWARD: int = 100
    PASS_PENALTY: int = 50
    PASS_RATIO: float = 0.2
    HARD_TURN_SECONDS: float = 10.0

    SURVIVAL_DAMAGE: int = 10
    SURVIVAL_REWARD: int = 100
    GAUGE_PER_MATCH: int = 20
    SPAWN_INTERVAL_MS: int = 3000
    DANGER_LINE: float = 75.0
    EFFECT_DURATION_MS: int = 5000
    SPEED_EFFECT_MULTIPLIER: float = 2.5
    TICK_INTERVAL_MS: int = 50

    # ═══════════════════════════════════════════════════
    # Housekeeping
    # ═══════════════════════════════════════════════════
    ROOM_IDLE_TIMEOUT_SECONDS: int = 1800
    ROOM_REAP_INTERVAL_SECONDS: int = 60
    ENABLE_TURN_CLOCK: bool = True

    # ═══════════════════════════════════════════════════
    # WebSocket Configuration
    # ═══════════════════════════════════════════════════
    WS_HEARTBEAT_INTERVAL: int = 30  # seconds

    # ═══════════════════════════════════════════════════
    # CORS Configuration
    # ═══════════════════════════════════════════════════
    CORS_ORIGINS: list[str] = ["*"]
    CORS_CREDENTIALS: bool = True
    CORS_METHODS: list[str] = ["*"]
    CORS_HEADERS: list[str] = ["*"]

    class Config:
        env_file = ".env"
        extra = "ignore"


_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Singleton Settings instance.

    Used through FastAPI dependency injection as well as directly by the
    services:

    @app.get("/info")
    def info(settings: Settings = Depends(get_settings)):
        return {"env": settings.ENV}
    """
    global _settings
    if not _settings:
        _settings = Settings()
    return _settings
