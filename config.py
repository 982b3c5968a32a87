import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


load_dotenv()

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_int(name, default):
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return int(value)


def _env_flag(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class Settings:
    """
    Process configuration, read from the environment (and .env).
    """
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    agent_name: str = "Caixa"
    database_path: Path = Path("data/caixa.db")
    history_max_turns: int = 20
    history_max_scopes: int = 1000
    history_ttl_seconds: int = 24 * 3600
    max_tool_rounds: int = 30
    simulate_typing: bool = False
    reply_timeout_seconds: int = 120
    log_level: str = "INFO"
    currency: str = "R$"


def load_settings() -> Settings:
    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY"),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        agent_name=os.getenv("AGENT_NAME", "Caixa"),
        database_path=Path(os.getenv("DATABASE_PATH", "data/caixa.db")),
        history_max_turns=_env_int("HISTORY_MAX_TURNS", 20),
        history_max_scopes=_env_int("HISTORY_MAX_SCOPES", 1000),
        history_ttl_seconds=_env_int("HISTORY_TTL_SECONDS", 24 * 3600),
        max_tool_rounds=_env_int("MAX_TOOL_ROUNDS", 30),
        simulate_typing=_env_flag("SIMULATE_TYPING"),
        reply_timeout_seconds=_env_int("REPLY_TIMEOUT_SECONDS", 120),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        currency=os.getenv("CURRENCY", "R$"),
    )
