"""Configuration management for Recast."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _parse_cors_origins() -> list[str]:
    """Parse CORS origins from environment variable."""
    cors_env = os.getenv("CORS_ALLOW_ORIGINS")
    if cors_env:
        return cors_env.split(",")
    return ["*"]


def _parse_api_keys() -> dict[str, str]:
    """Parse API key to account mappings from environment variable.

    Format is a comma-separated list of ``key:account_id`` pairs. Malformed
    pairs are skipped.
    """
    keys_env = os.getenv("API_KEYS", "")
    mapping: dict[str, str] = {}
    for pair in keys_env.split(","):
        key, sep, account_id = pair.strip().partition(":")
        if sep and key and account_id:
            mapping[key] = account_id
    return mapping


class Settings(BaseModel):
    """Application settings."""

    # Server settings
    host: str = os.getenv("HOST", "127.0.0.1")
    port: int = int(os.getenv("PORT", "8000"))
    debug: bool = os.getenv("DEBUG", "false").lower() == "true"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS settings (comma-separated list of allowed origins, or * for all)
    cors_allow_origins: list[str] = _parse_cors_origins()

    # Credit ledger (SQLite)
    database_path: Path = Path(os.getenv("DATABASE_PATH", "data/recast.db"))
    default_credits: int = int(os.getenv("DEFAULT_CREDITS", "1000"))
    ledger_busy_timeout_seconds: float = float(os.getenv("LEDGER_BUSY_TIMEOUT_SECONDS", "5.0"))

    # Caller identity - static API keys (key:account_id,...)
    api_keys: dict[str, str] = _parse_api_keys()

    # High-reasoning provider (Anthropic)
    anthropic_api_key: Optional[str] = os.getenv("ANTHROPIC_API_KEY")
    high_reasoning_model: str = os.getenv("HIGH_REASONING_MODEL", "claude-3-5-sonnet-20240620")

    # Low-cost provider (Cloudflare Workers AI)
    cloudflare_api_token: Optional[str] = os.getenv("CLOUDFLARE_API_TOKEN")
    cloudflare_account_id: Optional[str] = os.getenv("CLOUDFLARE_ACCOUNT_ID")
    low_cost_model: str = os.getenv("LOW_COST_MODEL", "@cf/meta/llama-3.1-8b-instruct")

    # Generation parameters shared by both providers
    max_output_tokens: int = int(os.getenv("MAX_OUTPUT_TOKENS", "4096"))
    temperature: float = float(os.getenv("TEMPERATURE", "0.7"))
    provider_timeout_seconds: float = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "60.0"))

    # Request limits
    max_text_length: int = int(os.getenv("MAX_TEXT_LENGTH", "15000"))
    min_credits_to_start: int = int(os.getenv("MIN_CREDITS_TO_START", "1"))  # Pre-flight balance check

    # Relay call logging
    enable_call_logging: bool = os.getenv("ENABLE_CALL_LOGGING", "true").lower() == "true"
    call_log_path: Path = Path(os.getenv("CALL_LOG_PATH", "logs/relay_calls.jsonl"))
    call_log_max_recent: int = int(os.getenv("CALL_LOG_MAX_RECENT", "100"))


settings = Settings()
