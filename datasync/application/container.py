from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, TypeVar

from ..domain.models import Record
from ..domain.repositories import DataService
from ..infrastructure import CachingDataService, seed_collection
from ..infrastructure.metrics import MetricsClient
from ..infrastructure.random import SystemRandomizer
from ..infrastructure.rest import RestDataService
from ..infrastructure.sqlite import SQLiteDatabase, SQLiteDataService
from ..network import AuthInterceptor, LoggingInterceptor, MetricsInterceptor, NetworkClient
from .collection import CollectionController
from .metrics import configure_metrics_logger

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class AppConfig:
    db_path: str = "data/datasync.db"
    base_url: str | None = None
    rest_prefix: str = ""
    api_token: str | None = None
    request_timeout: float = 30.0
    page_size: int = 20
    table: str = "items"
    seed_path: str | None = None
    metrics_path: str | None = None
    log_http: bool = False
    cache_ttl: float | None = None
    cache_max_size: int = 1000


def record_id(record: Record) -> str:
    return str(record["id"])


class AppContainer:
    def __init__(
        self,
        *,
        config: AppConfig,
        data_service: DataService,
        network_client: NetworkClient,
        metrics: MetricsClient,
        database: SQLiteDatabase | None = None,
    ):
        self.config = config
        self.data_service = data_service
        self.network_client = network_client
        self.metrics = metrics
        self._database = database

    async def init_resources(self) -> None:
        if self._database is not None:
            await self._database.init()

    async def seed(self, table: str, path: str) -> int:
        return await seed_collection(self.data_service, table, path)

    def collection(
        self,
        table: str,
        *,
        decode: Callable[[Record], T],
        encode: Callable[[T], Record],
        id_of: Callable[[T], str],
    ) -> CollectionController[T]:
        return CollectionController(self.data_service, table, decode=decode, encode=encode, id_of=id_of)

    def record_collection(self, table: str) -> CollectionController[Record]:
        return self.collection(table, decode=dict, encode=dict, id_of=record_id)

    async def close(self) -> None:
        await self.network_client.close()


def create_container(config: AppConfig) -> AppContainer:
    metrics = MetricsClient()
    if config.metrics_path:
        metrics.configure(configure_metrics_logger(config.metrics_path))

    client = NetworkClient(
        config.base_url or "",
        default_headers={"Accept": "application/json"},
        timeout=config.request_timeout,
    )
    if config.api_token:
        token = config.api_token

        async def token_provider() -> str | None:
            return token

        client.add_interceptor(AuthInterceptor(token_provider))
    if config.log_http:
        client.add_interceptor(LoggingInterceptor())
    client.add_interceptor(MetricsInterceptor(metrics))

    database: SQLiteDatabase | None = None
    data_service: DataService
    if config.base_url:
        logger.info("Using REST data service at %s%s", config.base_url, config.rest_prefix)
        data_service = RestDataService(client, prefix=config.rest_prefix, randomizer=SystemRandomizer())
    else:
        logger.info("Using SQLite data service at %s", config.db_path)
        database = SQLiteDatabase(config.db_path)
        data_service = SQLiteDataService(database)

    if config.cache_ttl:
        logger.info("Caching reads for %ss, up to %s entries", config.cache_ttl, config.cache_max_size)
        data_service = CachingDataService(
            data_service,
            default_ttl=config.cache_ttl,
            max_cache_size=config.cache_max_size,
        )

    return AppContainer(
        config=config,
        data_service=data_service,
        network_client=client,
        metrics=metrics,
        database=database,
    )
