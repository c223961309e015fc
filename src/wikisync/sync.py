"""Sync orchestration for one workspace and the sub-workspaces it owns."""

import asyncio
import logging

from .commit_message import is_ai_generate_backup_title_enabled
from .config import Config
from .constants import (
    APP_NAME,
    DEFAULT_BACKUP_MESSAGE,
    DEFAULT_COMMIT_MESSAGE,
    DRAFT_BLOCKED_NOTIFICATION,
)
from .draft import check_can_sync_due_to_no_draft
from .interfaces import (
    AuthService,
    GitService,
    ViewService,
    WikiService,
    WorkspaceRegistry,
)
from .models import SyncOptions, Workspace

logger = logging.getLogger(APP_NAME)


class SyncService:
    """Decides whether and how each workspace syncs, then drives git and views.

    Attributes:
        registry (WorkspaceRegistry): Workspace lookup.
        git (GitService): Commit, sync and force-pull.
        wiki (WikiService): Draft queries and in-wiki notifications.
        auth (AuthService): Credentials per storage service.
        views (ViewService): Restart and reload after incoming changes.
        config (Config): Sync and AI preferences.
    """

    def __init__(
        self,
        registry: WorkspaceRegistry,
        git: GitService,
        wiki: WikiService,
        auth: AuthService,
        views: ViewService,
        config: Config,
    ):
        self.registry = registry
        self.git = git
        self.wiki = wiki
        self.auth = auth
        self.views = views
        self.config = config
        self._in_flight: set[str] = set()

    def is_syncing(self, workspace_id: str) -> bool:
        return workspace_id in self._in_flight

    def _commit_message(self) -> str | None:
        # None lets the git service ask the language model first.
        if is_ai_generate_backup_title_enabled(self.config.ai):
            return None
        return DEFAULT_COMMIT_MESSAGE

    async def _remote_options(self, workspace: Workspace) -> SyncOptions | None:
        """Builds sync options, or None when the URL or credentials are missing."""
        if not workspace.git_url:
            return None
        user_info = await self.auth.get_storage_service_user_info(
            workspace.storage_service
        )
        if user_info is None:
            return None
        return SyncOptions(
            dir=workspace.wiki_folder_location,
            commit_message=self._commit_message(),
            remote_url=workspace.git_url,
            user_info=user_info,
        )

    async def _sync_sub_workspace(self, sub: Workspace) -> bool:
        if not sub.is_remote or not sub.is_wiki:
            return False
        options = await self._remote_options(sub)
        if options is None:
            logger.debug(f"SKIPPED {sub.name}: no git url or credentials.")
            return False
        return await self.git.sync_or_force_pull(sub, options)

    async def _refresh(self, workspace: Workspace) -> None:
        if workspace.enable_file_system_watch:
            return
        await self.views.restart_workspace(workspace.id)
        await self.views.reload_workspace(workspace.id)

    async def sync_wiki_if_needed(self, workspace: Workspace) -> None:
        """Syncs a workspace according to its storage kind.

        Local workspaces are committed without any network access. Remote
        workspaces are synced (or force-pulled when read-only); a main workspace
        then syncs its remote sub-workspaces concurrently. If anything came in,
        the main workspace is restarted and reloaded once.

        Raises:
            GitCommandError: If a git operation fails. A failing sub-workspace
                does not cancel its siblings; the first failure is raised once
                all of them have finished.
        """
        if not workspace.is_wiki:
            logger.warning(f"SKIPPED {workspace.name}: not a wiki workspace.")
            return

        if self.config.sync.coalesce_overlapping and workspace.id in self._in_flight:
            logger.info(f"SKIPPED {workspace.name}: sync already in progress.")
            return

        self._in_flight.add(workspace.id)
        try:
            await self._sync(workspace)
        finally:
            self._in_flight.discard(workspace.id)

    async def _sync(self, workspace: Workspace) -> None:
        main = self.registry.get_main_workspace(workspace) if workspace.is_sub_wiki else None
        if workspace.is_sub_wiki and main is None:
            logger.error(f"ERROR {workspace.name}: main workspace not found.")
            return

        # Drafts live in the main wiki's runtime, sub-wikis have none of their own.
        draft_id = main.id if main is not None else workspace.id
        if self.config.sync.sync_only_when_no_draft:
            can_sync = await check_can_sync_due_to_no_draft(
                self.wiki, draft_id, self.config.sync.draft_check_fail_open
            )
            if not can_sync:
                logger.info(f"SKIPPED {workspace.name}: unsaved drafts.")
                try:
                    await self.wiki.general_notification(draft_id, DRAFT_BLOCKED_NOTIFICATION)
                except Exception as e:
                    logger.warning(f"NOTIFY {workspace.name}: {e}")
                return

        if not workspace.is_remote:
            await self.git.commit_and_sync(
                workspace,
                SyncOptions(
                    dir=workspace.wiki_folder_location,
                    commit_only=True,
                    commit_message=DEFAULT_BACKUP_MESSAGE,
                ),
            )
            return

        options = await self._remote_options(workspace)
        if options is None:
            logger.debug(f"SKIPPED {workspace.name}: no git url or credentials.")
            return

        changed = await self.git.sync_or_force_pull(workspace, options)

        if main is not None:
            if changed:
                await self._refresh(main)
            return

        subs = self.registry.get_sub_workspaces_as_list(workspace.id)
        results = await asyncio.gather(
            *(self._sync_sub_workspace(sub) for sub in subs), return_exceptions=True
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        for sub, result in zip(subs, results):
            if isinstance(result, BaseException):
                logger.error(f"SYNC ERROR {sub.name}: {result}")

        if changed or any(r is True for r in results):
            await self._refresh(workspace)
        if errors:
            raise errors[0]

    async def sync_now(self, workspace_id: str) -> None:
        """Runs one sync for a workspace, logging instead of raising."""
        workspace = self.registry.get(workspace_id)
        if workspace is None:
            logger.warning(f"SKIPPED {workspace_id}: unknown workspace.")
            return
        try:
            await self.sync_wiki_if_needed(workspace)
        except Exception as e:
            logger.error(f"SYNC ERROR {workspace.name}: {e}")
