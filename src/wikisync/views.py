import logging
from typing import TYPE_CHECKING

from .constants import APP_NAME
from .interfaces import ViewService, WorkspaceRegistry

if TYPE_CHECKING:
    from .scheduler import IntervalScheduler

logger = logging.getLogger(APP_NAME)


class HeadlessViewService(ViewService):
    """ViewService for the daemon, which renders nothing.

    A restart re-reads the workspace from the registry and re-registers its
    interval timer, so preference changes on disk take effect. The scheduler is
    attached after construction because it depends on the sync service, which
    depends on this object.

    Attributes:
        registry (WorkspaceRegistry): Source of fresh workspace data.
        scheduler (IntervalScheduler | None): Timers to refresh on restart.
        restarted (set[str]): Ids restarted since the daemon started.
    """

    def __init__(self, registry: WorkspaceRegistry):
        self.registry = registry
        self.scheduler: "IntervalScheduler | None" = None
        self.restarted: set[str] = set()

    async def restart_workspace(self, workspace_id: str) -> None:
        workspace = self.registry.get(workspace_id)
        if workspace is None:
            logger.warning(f"RESTART {workspace_id}: workspace no longer registered.")
            return
        self.restarted.add(workspace_id)
        if self.scheduler is not None:
            self.scheduler.start(workspace)
        logger.info(f"RESTART {workspace.name}: runtime restarted.")

    async def reload_workspace(self, workspace_id: str) -> None:
        logger.info(f"RELOAD {workspace_id}: view reloaded.")

    async def remove_workspace_view(self, workspace_id: str) -> None:
        if self.scheduler is not None:
            self.scheduler.stop(workspace_id)
        self.restarted.discard(workspace_id)
        logger.info(f"REMOVE VIEW {workspace_id}")
