import sys
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from loguru import logger
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

KNOWLEDGE_DIR = Path(__file__).resolve().parent / "knowledge"


class Settings(BaseSettings):
    google_api_key: Optional[str] = Field(None, validation_alias="GOOGLE_API_KEY")
    llm_model: str = Field("gemini-3-pro-preview", validation_alias="LLM_MODEL")
    thinking_budget: int = Field(4000, validation_alias="THINKING_BUDGET")

    guidelines_path: Path = Field(
        KNOWLEDGE_DIR / "guidelines.txt", validation_alias="GUIDELINES_PATH"
    )
    physician_directory_path: Path = Field(
        KNOWLEDGE_DIR / "physicians.txt", validation_alias="PHYSICIAN_DIRECTORY_PATH"
    )

    # In-memory by default: history lives only as long as the process.
    database_url: str = Field("sqlite://", validation_alias="DATABASE_URL")
    allowed_origins: str = Field("*", validation_alias="ALLOWED_ORIGINS")
    session_idle_timeout: float = Field(3600, validation_alias="SESSION_IDLE_TIMEOUT")
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def origins(self) -> List[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()] or ["*"]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


# -----------------------------
# KNOWLEDGE TEXTS
# -----------------------------
@dataclass(frozen=True)
class KnowledgeBase:
    """Guideline and physician directory texts, loaded once at startup."""

    guidelines: str
    physician_directory: str

    @classmethod
    def load(cls, settings: Settings) -> "KnowledgeBase":
        guidelines = _read_text(settings.guidelines_path)
        directory = _read_text(settings.physician_directory_path)
        logger.info(
            "Loaded knowledge base: guidelines={} chars, directory={} chars",
            len(guidelines),
            len(directory),
        )
        return cls(guidelines=guidelines, physician_directory=directory)


def _read_text(path: Path) -> str:
    if not path.is_file():
        raise FileNotFoundError(f"Knowledge file not found: {path}")
    return path.read_text(encoding="utf-8").strip()


# -----------------------------
# LOGGING
# -----------------------------
def configure_logging(level: str = "INFO") -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} - {message}",
    )
