import asyncio
import logging
import os

from dotenv import load_dotenv

from .application.bootstrap import bootstrap_app
from .application.container import AppConfig
from .domain import CollectionState

load_dotenv()
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

FALSE_VALUES = {"0", "false", "no"}


def _number(name: str, default: str, cast):
    raw = os.getenv(name, default).strip()
    try:
        value = cast(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {raw!r}")
    return value


def _optional_number(name: str, cast):
    if not os.getenv(name, "").strip():
        return None
    return _number(name, "", cast)


def load_app_config() -> AppConfig:
    config = AppConfig(
        db_path=os.getenv("DATASYNC_DB_PATH", "data/datasync.db").strip(),
        base_url=os.getenv("DATASYNC_BASE_URL", "").strip().rstrip("/") or None,
        rest_prefix=os.getenv("DATASYNC_REST_PREFIX", "").strip(),
        api_token=os.getenv("DATASYNC_API_TOKEN", "").strip() or None,
        request_timeout=_number("DATASYNC_TIMEOUT", "30", float),
        page_size=_number("DATASYNC_PAGE_SIZE", "20", int),
        table=os.getenv("DATASYNC_TABLE", "items").strip() or "items",
        seed_path=os.getenv("DATASYNC_SEED_PATH", "").strip() or None,
        metrics_path=os.getenv("DATASYNC_METRICS_PATH", "").strip() or None,
        log_http=os.getenv("DATASYNC_LOG_HTTP", "0").strip().lower() not in FALSE_VALUES,
        cache_ttl=_optional_number("DATASYNC_CACHE_TTL", float),
        cache_max_size=_number("DATASYNC_CACHE_MAX_SIZE", "1000", int),
    )
    logger.info(
        "Config loaded: source=%s, table=%s, page_size=%s, timeout=%ss, cache_ttl=%s, seed=%s, metrics=%s",
        config.base_url or config.db_path,
        config.table,
        config.page_size,
        config.request_timeout,
        config.cache_ttl or "off",
        config.seed_path or "none",
        config.metrics_path or "none",
    )
    return config


def _log_state(state: CollectionState) -> None:
    logger.debug(
        "state: items=%s loading=%s page=%s has_more=%s error=%s",
        state.item_count,
        state.is_loading,
        state.current_page,
        state.has_more,
        state.error,
    )


async def main():
    config = load_app_config()
    async with bootstrap_app(config) as container:
        if config.seed_path:
            await container.seed(config.table, config.seed_path)

        controller = container.record_collection(config.table)
        controller.state.add_value_listener(_log_state)

        # append from an empty state so page N is fetched at offset (N-1)*page_size
        await controller.load_paginated(page_size=config.page_size, append=True)
        while controller.snapshot.has_more and not controller.snapshot.has_error:
            await controller.load_next_page()

        state = controller.snapshot
        if state.has_error:
            logger.error("Sync of %s failed: %s", config.table, state.error)
        else:
            logger.info("Synced %s records from %s", state.item_count, config.table)


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted by user, shutting down")


if __name__ == "__main__":
    run()
