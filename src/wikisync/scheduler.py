import asyncio
import logging

from .config import Config
from .constants import APP_NAME
from .models import Workspace
from .sync import SyncService

logger = logging.getLogger(APP_NAME)


class IntervalScheduler:
    """One repeating sync task per workspace.

    A timer is only ever cancelled while it sleeps. Restarting or stopping a
    workspace whose tick is mid-sync is deferred until that tick returns.

    Attributes:
        sync_service (SyncService): Runs each tick's sync.
        config (Config): Provides `sync.sync_debounce_interval` (milliseconds).
    """

    def __init__(self, sync_service: SyncService, config: Config):
        self.sync_service = sync_service
        self.config = config
        self._tasks: dict[str, asyncio.Task] = {}
        self._ticking: set[str] = set()
        # Replacement applied when the current tick ends; None means stop.
        self._pending: dict[str, Workspace | None] = {}

    def __len__(self) -> int:
        return len(self._tasks)

    def is_running(self, workspace_id: str) -> bool:
        task = self._tasks.get(workspace_id)
        return task is not None and not task.done()

    def is_ticking(self, workspace_id: str) -> bool:
        return workspace_id in self._ticking

    def start(self, workspace: Workspace) -> None:
        """(Re)starts the timer of a workspace; must be called inside a running loop.

        An existing sleeping timer for the same id is cancelled first, so a
        workspace never has two.
        """
        if workspace.id in self._ticking:
            self._pending[workspace.id] = workspace
            logger.debug(f"TIMER {workspace.name}: restart deferred until tick ends.")
            return
        self.stop(workspace.id)
        if not (workspace.sync_on_interval or workspace.backup_on_interval):
            return
        self._tasks[workspace.id] = asyncio.get_running_loop().create_task(
            self._run(workspace), name=f"sync-interval-{workspace.id}"
        )
        logger.debug(
            f"TIMER {workspace.name}: every {self.config.sync.sync_debounce_interval}ms"
        )

    def stop(self, workspace_id: str) -> None:
        if workspace_id in self._ticking:
            self._pending[workspace_id] = None
            return
        self._pending.pop(workspace_id, None)
        task = self._tasks.pop(workspace_id, None)
        if task is not None:
            task.cancel()

    def stop_all(self) -> None:
        for workspace_id in list(self._tasks):
            self.stop(workspace_id)

    async def drain(self) -> None:
        """Waits for ticks that were mid-sync when `stop_all` ran."""
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)

    async def _run(self, workspace: Workspace) -> None:
        interval = self.config.sync.sync_debounce_interval / 1000
        while True:
            await asyncio.sleep(interval)
            current = self.sync_service.registry.get(workspace.id) or workspace
            self._ticking.add(workspace.id)
            try:
                await self.sync_service.sync_wiki_if_needed(current)
            except Exception as e:
                logger.error(f"SYNC ERROR {current.name}: {e}")
            finally:
                self._ticking.discard(workspace.id)
            if workspace.id in self._pending:
                replacement = self._pending.pop(workspace.id)
                self._tasks.pop(workspace.id, None)
                if replacement is not None:
                    self.start(replacement)
                return
