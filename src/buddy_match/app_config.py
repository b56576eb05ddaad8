from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path


@dataclass
class RuntimeEnv:
    provider_api_key: str
    provider_env_var: str


@dataclass
class AppConfig:
    host: str
    port: int
    store_db_path: str
    provider_name: str
    model: str
    max_tokens: int
    temperature: float
    bot_timeout_seconds: float
    provider_max_attempts: int
    session_retention_days: int
    presence_ttl_minutes: int
    prune_on_startup: bool
    cors_origins: list[str]
    log_level: str
    log_consumers: list | None


_DEFAULT_MODELS = {
    "openai": "gpt-4.1-mini",
    "anthropic": "claude-sonnet-4-5-20250929",
}


def load_json_config() -> dict:
    config_path = Path.cwd() / "config.json"
    if config_path.exists():
        with open(config_path) as f:
            return json.load(f)
    return {}


def _to_bool(value: object, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return bool(value)


def parse_app_config(config: dict) -> AppConfig:
    provider_name = str(config.get("Provider", "openai")).strip().lower()
    return AppConfig(
        host=str(config.get("Host", "127.0.0.1")),
        port=int(config.get("Port", 8000)),
        store_db_path=str(config.get("StoreDbPath", ".buddy/store.db")),
        provider_name=provider_name,
        model=config.get("Model", _DEFAULT_MODELS.get(provider_name, "gpt-4.1-mini")),
        max_tokens=int(config.get("MaxTokens", 512)),
        temperature=float(config.get("Temperature", 0.7)),
        bot_timeout_seconds=float(config.get("BotTimeoutSeconds", 20)),
        provider_max_attempts=int(config.get("ProviderMaxAttempts", 2)),
        session_retention_days=int(config.get("SessionRetentionDays", 30)),
        presence_ttl_minutes=int(config.get("PresenceTtlMinutes", 30)),
        prune_on_startup=_to_bool(config.get("PruneOnStartup", True), default=True),
        cors_origins=list(config.get("CorsOrigins", ["*"])),
        log_level=config.get("LogLevel", "INFO"),
        log_consumers=config.get("LogConsumers"),
    )


def resolve_runtime_env(provider_name: str) -> RuntimeEnv:
    if provider_name == "anthropic":
        provider_env_var = "ANTHROPIC_API_KEY"
    else:
        provider_env_var = "OPENAI_API_KEY"
    return RuntimeEnv(
        provider_api_key=os.environ.get(provider_env_var, ""),
        provider_env_var=provider_env_var,
    )
