import sys
from pathlib import Path

import uvicorn
from dotenv import load_dotenv
from loguru import logger

from buddy_match.api.server import create_app
from buddy_match.app_config import load_json_config, parse_app_config, resolve_runtime_env
from buddy_match.logging_config import setup_logging
from buddy_match.provider import CompletionsProvider, create_provider
from buddy_match.services import BuddyCoordinator
from buddy_match.store import SqliteKVStore, prune_store


def main() -> None:
    load_dotenv()

    config = parse_app_config(load_json_config())
    log_descriptions = setup_logging(level=config.log_level, consumers=config.log_consumers)

    env = resolve_runtime_env(config.provider_name)
    provider: CompletionsProvider | None = None
    if env.provider_api_key:
        try:
            provider = create_provider(
                config.provider_name,
                env.provider_api_key,
                model=config.model,
                max_tokens=config.max_tokens,
                temperature=config.temperature,
                max_attempts=config.provider_max_attempts,
            )
        except ValueError as ex:
            logger.error(str(ex))
            sys.exit(1)
    else:
        logger.warning(f"{env.provider_env_var} is not set; automated buddy replies are disabled.")

    db_path = Path(config.store_db_path)
    if not db_path.is_absolute():
        db_path = Path.cwd() / db_path
    store = SqliteKVStore(str(db_path))

    if config.prune_on_startup:
        prune_store(
            store,
            session_retention_days=config.session_retention_days,
            presence_ttl_minutes=config.presence_ttl_minutes,
        )

    coordinator = BuddyCoordinator(store, provider, bot_timeout_seconds=config.bot_timeout_seconds)
    app = create_app(coordinator, cors_origins=config.cors_origins)

    logger.info(f"talking-buddy listening on {config.host}:{config.port} (store: {db_path})")
    if provider is not None:
        logger.info(f"Automated buddy: {config.provider_name} ({config.model}, timeout {config.bot_timeout_seconds:g}s)")
    if log_descriptions:
        logger.info(f"Logging: {', '.join(log_descriptions)}")

    try:
        uvicorn.run(app, host=config.host, port=config.port, log_config=None)
    finally:
        store.close()


if __name__ == "__main__":
    main()
