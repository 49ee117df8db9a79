"""Background refresh of the release catalog."""
import asyncio

from mcp_env_provisioner.logging import get_logger
from mcp_env_provisioner.versions.catalog import VersionCatalog

logger = get_logger(__name__)


class CatalogRefresher:
    """Periodically refreshes a :class:`VersionCatalog` until stopped."""

    def __init__(self, catalog: VersionCatalog, interval: float):
        if interval <= 0:
            raise ValueError(f"Refresh interval must be positive, got {interval}")
        self.catalog = catalog
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _loop(self) -> None:
        while True:
            await self.catalog.refresh_all()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.running:
            return
        logger.info("catalog_refresher_start", interval=self.interval)
        self._task = asyncio.create_task(self._loop(), name="catalog-refresher")

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("catalog_refresher_stop")

    async def __aenter__(self) -> "CatalogRefresher":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()
