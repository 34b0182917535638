import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    database_url: str
    completion_policy: str
    trend_history_size: int
    trend_epsilon: float
    log_level: str
    log_file: str | None


def get_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL_CLINIC", "sqlite:///./clinic.db"),
        completion_policy=os.getenv("EXAM_COMPLETION_POLICY", "strict").lower(),
        trend_history_size=int(os.getenv("TREND_HISTORY_SIZE", "3")),
        trend_epsilon=float(os.getenv("TREND_EPSILON", "0.001")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_file=os.getenv("LOG_FILE") or None,
    )
