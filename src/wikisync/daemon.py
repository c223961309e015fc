import asyncio
import atexit
import logging
import os
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler

from .config import Config
from .constants import APP_NAME, LOG_FILE, PID_FILE, STATE_DIR, WORKSPACES_FILE
from .credentials import ConfigAuthService
from .git_service import CliGitService
from .llm import OpenAICompatibleGenerator
from .prompt import ConsolePrompter
from .registry import JsonWorkspaceRegistry
from .scheduler import IntervalScheduler
from .shutdown import ShutdownFlushHandler
from .sync import SyncService
from .system import get_system
from .transaction import WikiGitWorkspace
from .views import HeadlessViewService
from .wiki import LocalWikiService

logger = logging.getLogger(APP_NAME)
logger.setLevel(logging.INFO)


@dataclass
class Services:
    """The wired object graph shared by the daemon and the CLI."""

    config: Config
    registry: JsonWorkspaceRegistry
    generator: OpenAICompatibleGenerator
    git: CliGitService
    wiki: LocalWikiService
    auth: ConfigAuthService
    views: HeadlessViewService
    sync: SyncService
    scheduler: IntervalScheduler
    workspaces: WikiGitWorkspace

    async def aclose(self) -> None:
        self.scheduler.stop_all()
        await self.scheduler.drain()
        await self.generator.aclose()


def build_services(config: Config | None = None) -> Services:
    config = config or Config.load()
    registry = JsonWorkspaceRegistry(WORKSPACES_FILE)
    generator = OpenAICompatibleGenerator.from_config(config.ai)
    git = CliGitService(config, generator)
    wiki = LocalWikiService(registry, get_system())
    auth = ConfigAuthService(config)
    views = HeadlessViewService(registry)
    sync = SyncService(registry, git, wiki, auth, views, config)
    scheduler = IntervalScheduler(sync, config)
    views.scheduler = scheduler
    workspaces = WikiGitWorkspace(registry, git, wiki, views, scheduler, ConsolePrompter())
    return Services(
        config=config,
        registry=registry,
        generator=generator,
        git=git,
        wiki=wiki,
        auth=auth,
        views=views,
        sync=sync,
        scheduler=scheduler,
        workspaces=workspaces,
    )


def setup_logging(interactive: bool, config: Config | None = None) -> None:
    """Configures the logging subsystem.

    Args:
        interactive (bool): If True, logs to stdout. If False, logs to stderr and
                            a rotating file.
        config (Config | None): Provides the log size limit.
    """
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )

    # Always log to a stream (captured by systemd/launchd in daemon mode).
    stream_handler = logging.StreamHandler(
        sys.stderr if not interactive else sys.stdout
    )
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if not interactive:
        config = config or Config.load()
        STATE_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=config.limits.max_log_size,
            backupCount=5,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


async def run(services: Services) -> None:
    """Runs interval syncs until a termination signal has been flushed."""
    loop = asyncio.get_running_loop()
    stopped = asyncio.Event()

    def on_complete() -> None:
        services.scheduler.stop_all()
        stopped.set()

    handler = ShutdownFlushHandler(
        services.registry, services.git, services.auth, services.config, on_complete
    )
    handler.install(loop)

    for workspace in services.registry.get_workspaces_as_list():
        if workspace.is_wiki and not workspace.hibernated:
            services.scheduler.start(workspace)
    logger.info(f"STARTED: {len(services.scheduler)} workspaces on interval.")

    try:
        await stopped.wait()
    finally:
        await services.aclose()
    logger.info("STOPPED")


def main(interactive: bool = False) -> None:
    """The daemon entry point.

    Args:
        interactive (bool, optional): Log to stdout instead of the log file.
                                      Defaults to False.
    """
    config = Config.load()
    setup_logging(interactive, config)

    # PID File Management.
    if not interactive:
        try:
            STATE_DIR.mkdir(parents=True, exist_ok=True)
            with open(PID_FILE, "w") as f:
                f.write(str(os.getpid()))

            # Ensure cleanup on exit.
            atexit.register(lambda: PID_FILE.unlink(missing_ok=True))
        except OSError as e:
            logger.warning(f"Could not write PID file: {e}")

    asyncio.run(run(build_services(config)))


if __name__ == "__main__":
    main()
