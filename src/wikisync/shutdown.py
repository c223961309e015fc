import asyncio
import logging
import signal
from collections.abc import Callable

from .config import Config
from .constants import APP_NAME, DEFAULT_COMMIT_MESSAGE, SHUTDOWN_SYNC_NOTIFICATION
from .interfaces import AuthService, GitService, WorkspaceRegistry
from .models import SyncOptions, Workspace
from .system import SystemStrategy, get_system, is_online

logger = logging.getLogger(APP_NAME)


class ShutdownFlushHandler:
    """Pushes every remote wiki once before the process exits.

    Termination signals are intercepted so the flush can finish; `on_complete`
    runs afterwards whatever the outcome and is expected to end the process.

    Attributes:
        registry (WorkspaceRegistry): Workspaces to flush.
        git (GitService): Runs the final commit-and-sync.
        auth (AuthService): Credentials per storage service.
        config (Config): Network probe settings.
        on_complete (Callable[[], None]): Called once the flush has settled.
    """

    def __init__(
        self,
        registry: WorkspaceRegistry,
        git: GitService,
        auth: AuthService,
        config: Config,
        on_complete: Callable[[], None],
        system: SystemStrategy | None = None,
    ):
        self.registry = registry
        self.git = git
        self.auth = auth
        self.config = config
        self.on_complete = on_complete
        self.system = system or get_system()
        self._task: asyncio.Task | None = None

    def install(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._on_signal, loop, sig)

    def _on_signal(self, loop: asyncio.AbstractEventLoop, sig: signal.Signals) -> None:
        if self._task is not None:
            logger.info(f"FLUSH: {sig.name} received, flush already running.")
            return
        logger.info(f"FLUSH: {sig.name} received, syncing before exit.")
        self._task = loop.create_task(self.flush())

    async def _flush_one(self, workspace: Workspace) -> None:
        user_info = await self.auth.get_storage_service_user_info(
            workspace.storage_service
        )
        if user_info is None:
            logger.debug(f"FLUSH {workspace.name}: no credentials, skipped.")
            return
        await self.git.commit_and_sync(
            workspace,
            SyncOptions(
                dir=workspace.wiki_folder_location,
                commit_message=DEFAULT_COMMIT_MESSAGE,
                remote_url=workspace.git_url,
                user_info=user_info,
            ),
        )

    def _eligible(self) -> list[Workspace]:
        return [
            w
            for w in self.registry.get_workspaces_as_list()
            if w.is_wiki and w.is_remote and not w.hibernated and w.git_url
        ]

    async def flush(self) -> None:
        """Commits and syncs every eligible workspace, then calls `on_complete`."""
        try:
            online = await is_online(
                self.config.network.probe_host, self.config.network.probe_timeout
            )
            if not online:
                logger.info("FLUSH: offline, nothing pushed.")
                return

            workspaces = self._eligible()
            if not workspaces:
                return
            try:
                await asyncio.to_thread(
                    self.system.notify, APP_NAME, SHUTDOWN_SYNC_NOTIFICATION
                )
            except Exception as e:
                logger.warning(f"FLUSH: notification failed: {e}")
            results = await asyncio.gather(
                *(self._flush_one(w) for w in workspaces), return_exceptions=True
            )
            for workspace, result in zip(workspaces, results):
                if isinstance(result, BaseException):
                    logger.error(f"FLUSH ERROR {workspace.name}: {result}")
            logger.info(f"FLUSH: {len(workspaces)} workspaces processed.")
        except Exception as e:
            logger.error(f"FLUSH ERROR: {e}")
        finally:
            self.on_complete()
