"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "helpdesk.db"
DEFAULT_EXCLUSIONS_PATH = DATA_DIR / "excluded.json"
DEFAULT_UPLOADS_DIR = DATA_DIR / "uploads"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)


PathLike = Union[str, Path]

# Keywords of the support line. An empty KEYWORD_FILTER
# env value disables keyword filtering entirely.
DEFAULT_KEYWORDS: tuple[str, ...] = (
    "kode",
    "tujuan",
    "cek",
    "tolong",
    "up",
    "update",
    "bantu",
    "sore",
    "siang",
    "pagi",
    "tim",
    "gimana",
    "gmn",
    "lama",
    "hc",
    "marah",
    "validasi",
    "refund",
    "batalkan",
    "batal",
    "diproses",
    "proses",
    "Menunggu Jawaban",
    "trx",
    "Mhn tunggu trx sblmnya selesai",
    "bagaimana",
)


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def resolve_path(env_value: PathLike | None, default: Path) -> Path:
    """Resolve a file or directory setting relative to the project root."""
    if not env_value:
        return default
    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def parse_keywords(raw: str | None) -> tuple[str, ...]:
    """Parse a comma-separated keyword list. None means the defaults."""
    if raw is None:
        return DEFAULT_KEYWORDS
    return tuple(k.strip() for k in raw.split(",") if k.strip())


@dataclass
class Settings:
    """Runtime settings for the pipeline and its collaborators."""

    db_path: PathLike = DEFAULT_DB_PATH
    exclusions_path: Path = DEFAULT_EXCLUSIONS_PATH
    uploads_dir: Path = DEFAULT_UPLOADS_DIR
    keywords: tuple[str, ...] = field(default_factory=lambda: DEFAULT_KEYWORDS)
    max_message_length: int = 200
    reference_offset_hours: int = 7
    auto_reply_timeout: float = 12.0
    transport_url: str = "http://localhost:3001"
    llm_model: str = "claude-3-5-haiku-20241022"
    api_host: str = "localhost"
    api_port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        return cls(
            db_path=resolve_db_path(os.getenv("DATABASE_URL")),
            exclusions_path=resolve_path(
                os.getenv("EXCLUSIONS_PATH"), DEFAULT_EXCLUSIONS_PATH
            ),
            uploads_dir=resolve_path(os.getenv("UPLOADS_DIR"), DEFAULT_UPLOADS_DIR),
            keywords=parse_keywords(os.getenv("KEYWORD_FILTER")),
            max_message_length=int(os.getenv("MAX_MESSAGE_LENGTH", "200")),
            reference_offset_hours=int(os.getenv("REFERENCE_UTC_OFFSET_HOURS", "7")),
            auto_reply_timeout=float(os.getenv("AUTO_REPLY_TIMEOUT_SECONDS", "12")),
            transport_url=os.getenv("TRANSPORT_URL", "http://localhost:3001"),
            llm_model=os.getenv("LLM_MODEL", "claude-3-5-haiku-20241022"),
            api_host=os.getenv("API_HOST", "localhost"),
            api_port=int(os.getenv("API_PORT", "8000")),
        )
