"""Creation and removal of workspaces together with their git repositories."""

import logging
import traceback

from .constants import APP_NAME
from .errors import InitWikiGitError, InitWikiGitRevertError, NoGitUserInfoError
from .interfaces import GitService, Prompter, ViewService, WikiService, WorkspaceRegistry
from .models import GitUserInfo, NewWorkspaceConfig, RemoveChoice, SubWikiRoute, Workspace
from .scheduler import IntervalScheduler

logger = logging.getLogger(APP_NAME)


def _route_of(workspace: Workspace) -> SubWikiRoute | None:
    if not workspace.tag_name:
        return None
    return SubWikiRoute(
        tag_name=workspace.tag_name,
        folder_name=workspace.wiki_folder_location.name,
    )


class WikiGitWorkspace:
    """Keeps the workspace registry and the folders on disk consistent.

    Attributes:
        registry (WorkspaceRegistry): Persistent workspace records.
        git (GitService): Repository initialization.
        wiki (WikiService): Folder removal and sub-wiki routing.
        views (ViewService): Views to drop on removal.
        scheduler (IntervalScheduler): Timers to stop on removal.
        prompter (Prompter): Removal confirmation.
    """

    def __init__(
        self,
        registry: WorkspaceRegistry,
        git: GitService,
        wiki: WikiService,
        views: ViewService,
        scheduler: IntervalScheduler,
        prompter: Prompter,
    ):
        self.registry = registry
        self.git = git
        self.wiki = wiki
        self.views = views
        self.scheduler = scheduler
        self.prompter = prompter

    async def _init_git(self, workspace: Workspace, user_info: GitUserInfo | None) -> None:
        path = workspace.wiki_folder_location
        if await self.git.has_git(path):
            logger.warning(f"INIT {workspace.name}: repository exists, skipping init.")
            return

        if workspace.is_remote:
            if not workspace.git_url or user_info is None:
                raise NoGitUserInfoError(workspace.git_url, user_info is not None)
            await self.git.init_wiki_git(
                path,
                is_synced=True,
                is_main_wiki=not workspace.is_sub_wiki,
                remote_url=workspace.git_url,
                user_info=user_info,
            )
        else:
            await self.git.init_wiki_git(
                path, is_synced=False, is_main_wiki=not workspace.is_sub_wiki
            )

    async def _revert(self, workspace: Workspace) -> None:
        path = workspace.wiki_folder_location
        if not workspace.is_sub_wiki:
            await self.wiki.remove_wiki(path)
            return
        if workspace.main_wiki_to_link is None:
            return
        await self.wiki.remove_wiki(path, workspace.main_wiki_to_link)
        if route := _route_of(workspace):
            await self.wiki.update_sub_wiki_plugin_content(
                workspace.main_wiki_to_link, None, route
            )

    async def init_wiki_git_transaction(
        self, config: NewWorkspaceConfig, user_info: GitUserInfo | None = None
    ) -> Workspace:
        """Registers a workspace and initializes its repository, all or nothing.

        Args:
            config (NewWorkspaceConfig): The workspace to create.
            user_info (GitUserInfo | None): Credentials, required for remote
                storage.

        Returns:
            Workspace: The registered, active workspace.

        Raises:
            InitWikiGitError: Initialization failed; the record and the folder
                were removed.
            InitWikiGitRevertError: Initialization failed and removing the folder
                failed too, so files may be left behind.
        """
        workspace = self.registry.create(config)
        self.registry.set_active_workspace(workspace.id)

        try:
            await self._init_git(workspace, user_info)
        except Exception as e:
            message = (
                f"init wiki git failed for {workspace.name}: {e}\n"
                f"{''.join(traceback.format_exception(e))}"
            )
            logger.critical(message)
            self.registry.remove(workspace.id)
            try:
                await self._revert(workspace)
            except Exception as cleanup_error:
                raise InitWikiGitRevertError(
                    f"could not revert {workspace.wiki_folder_location}: {cleanup_error}"
                ) from cleanup_error
            raise InitWikiGitError(message) from e

        return workspace

    async def remove_workspace(self, workspace_id: str) -> bool:
        """Asks for confirmation, then forgets a workspace and maybe its files.

        Every step after confirmation is attempted even if an earlier one
        fails; failures are logged.

        Returns:
            bool: False if the workspace is unknown or the user cancelled.
        """
        workspace = self.registry.get(workspace_id)
        if workspace is None:
            logger.warning(f"REMOVE {workspace_id}: unknown workspace.")
            return False

        choice = await self.prompter.confirm_removal(workspace)
        if choice == RemoveChoice.CANCEL:
            return False
        delete_files = choice == RemoveChoice.REMOVE_AND_DELETE
        path = workspace.wiki_folder_location

        try:
            await self.wiki.stop_wiki(path)
        except Exception as e:
            logger.error(f"REMOVE {workspace.name}: could not stop wiki: {e}")
        self.scheduler.stop(workspace_id)

        main_path = workspace.main_wiki_to_link
        if workspace.is_sub_wiki and main_path is not None:
            if route := _route_of(workspace):
                try:
                    await self.wiki.update_sub_wiki_plugin_content(main_path, None, route)
                except Exception as e:
                    logger.error(f"REMOVE {workspace.name}: could not detach route: {e}")
            try:
                await self.wiki.remove_wiki(
                    path, main_path, only_remove_link=not delete_files
                )
            except Exception as e:
                logger.error(f"REMOVE {workspace.name}: could not remove sub-wiki: {e}")
        elif delete_files:
            try:
                await self.wiki.remove_wiki(path)
            except Exception as e:
                logger.error(f"REMOVE {workspace.name}: could not delete files: {e}")

        try:
            self.registry.remove(workspace_id)
        except Exception as e:
            logger.error(f"REMOVE {workspace.name}: could not unregister: {e}")
        try:
            await self.views.remove_workspace_view(workspace_id)
        except Exception as e:
            logger.error(f"REMOVE {workspace.name}: could not remove view: {e}")
        try:
            if self.registry.get_active_workspace() is None:
                if first := self.registry.get_first_workspace():
                    self.registry.set_active_workspace(first.id)
        except Exception as e:
            logger.error(f"REMOVE {workspace.name}: could not activate another workspace: {e}")

        logger.info(
            f"REMOVED {workspace.name}{' and deleted its files' if delete_files else ''}."
        )
        return True
