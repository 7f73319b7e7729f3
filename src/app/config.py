"""Application configuration loaded from .env and defaults."""
from pathlib import Path
from pydantic_settings import BaseSettings

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

class Settings(BaseSettings):
    db_path: Path = PROJECT_ROOT / "data" / "tagcat.db"
    log_path: Path = PROJECT_ROOT / "data" / "logs" / "app.log"
    log_level: str = "INFO"
    default_family_id: str = "default"
    web_host: str = "127.0.0.1"
    web_port: int = 8787
    suggestion_limit: int = 30
    free_text_tag_limit: int = 4
    extra_official_tags: str = ""

    def get_extra_official_tags(self) -> list[str]:
        """Parse TAGCAT_EXTRA_OFFICIAL_TAGS into a list of raw tags.

        Format: "tag one,#tag_two". Tags are normalized by the taxonomy DAO.
        """
        if not self.extra_official_tags:
            return []
        return [t.strip() for t in self.extra_official_tags.split(",") if t.strip()]

    class Config:
        env_file = str(PROJECT_ROOT / ".env")
        env_file_encoding = "utf-8"
        env_prefix = "TAGCAT_"

def get_settings() -> Settings:
    return Settings()
