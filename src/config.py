import os
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


class Settings:
    # -------------------------------------------------------
    # Storage
    # -------------------------------------------------------
    DB_PATH: str = os.getenv("CLANSCROLL_DB_PATH", "genealogy.db")

    # JSON mirror of the member table, used when the database is unavailable
    BACKUP_PATH: str = os.getenv("CLANSCROLL_BACKUP_PATH", "members_backup.json")

    # -------------------------------------------------------
    # Kinship terms
    # -------------------------------------------------------
    LOCALE: str = os.getenv("CLANSCROLL_LOCALE", "zh")

    # -------------------------------------------------------
    # Layout / viewport (world units unless noted)
    # -------------------------------------------------------
    NODE_DX: float = float(os.getenv("CLANSCROLL_NODE_DX", 280))
    NODE_DY: float = float(os.getenv("CLANSCROLL_NODE_DY", 400))

    FIT_PADDING_X: float = float(os.getenv("CLANSCROLL_FIT_PADDING_X", 400))
    FIT_PADDING_Y: float = float(os.getenv("CLANSCROLL_FIT_PADDING_Y", 600))

    DRAG_THRESHOLD: float = float(os.getenv("CLANSCROLL_DRAG_THRESHOLD", 3))

    # Auto-fit animation length in milliseconds
    TRANSITION_MS: float = float(os.getenv("CLANSCROLL_TRANSITION_MS", 750))

    # -------------------------------------------------------
    # Text generation
    # -------------------------------------------------------
    API_KEY: str | None = os.getenv("API_KEY")
    AI_BASE_URL: str | None = os.getenv("AI_BASE_URL") or None
    AI_MODEL: str = os.getenv("AI_MODEL", "gemini-2.0-flash")
    AI_TIMEOUT: float = float(os.getenv("AI_TIMEOUT", 60))

    # -------------------------------------------------------
    # Logging
    # -------------------------------------------------------
    LOG_LEVEL: str = os.getenv("CLANSCROLL_LOG_LEVEL", "INFO")

    @property
    def node_size(self) -> tuple[float, float]:
        return (self.NODE_DX, self.NODE_DY)

    @property
    def fit_padding(self) -> tuple[float, float]:
        return (self.FIT_PADDING_X, self.FIT_PADDING_Y)


# Single instance that is imported everywhere
settings = Settings()
