from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import os

from dotenv import load_dotenv, find_dotenv

load_dotenv(find_dotenv(usecwd=True), override=False)


DEFAULT_EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@.]{2,}$"
DEFAULT_PHONE_PATTERN = r"^[\d\s\-+()]{10,}$"


@dataclass
class AppConfig:
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    model_preference: str = "openai:gpt-4o-mini"
    request_timeout_seconds: int = 30
    max_retries: int = 3
    retry_base_delay_seconds: float = 2.0
    log_level: str = "INFO"
    question_source: str = "llm"
    email_pattern: str = DEFAULT_EMAIL_PATTERN
    phone_pattern: str = DEFAULT_PHONE_PATTERN
    tick_seconds: float = 1.0
    scoring_failure_limit: int = 3


def load_config() -> AppConfig:
    return AppConfig(
        openai_api_key=(
            os.getenv("OPENAI_API_KEY")
            or os.getenv("OPENAI_KEY")
        ),
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
        model_preference=os.getenv("MODEL_PREFERENCE", "openai:gpt-4o-mini"),
        request_timeout_seconds=int(os.getenv("REQUEST_TIMEOUT_SECONDS", "30")),
        max_retries=int(os.getenv("MAX_RETRIES", "3")),
        retry_base_delay_seconds=float(os.getenv("RETRY_BASE_DELAY_SECONDS", "2.0")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        question_source=os.getenv("QUESTION_SOURCE", "llm").strip().lower(),
        email_pattern=os.getenv("EMAIL_PATTERN", DEFAULT_EMAIL_PATTERN),
        phone_pattern=os.getenv("PHONE_PATTERN", DEFAULT_PHONE_PATTERN),
        tick_seconds=float(os.getenv("TICK_SECONDS", "1.0")),
        scoring_failure_limit=int(os.getenv("SCORING_FAILURE_LIMIT", "3")),
    )
