"""Interfaces of the collaborators the sync engine drives.

Each class documents one capability. Concrete adapters live in their own
modules (`git_service`, `wiki`, `credentials`, `registry`, `views`, `llm`,
`prompt`); tests substitute mocks.
"""

from collections.abc import AsyncIterator
from pathlib import Path

from .models import (
    GitUserInfo,
    NewWorkspaceConfig,
    RemoveChoice,
    SubWikiRoute,
    SupportedStorageServices,
    SyncOptions,
    Workspace,
)


class GitService:
    """Git plumbing for wiki folders."""

    async def has_git(self, path: Path) -> bool:
        raise NotImplementedError

    async def init_wiki_git(
        self,
        path: Path,
        is_synced: bool,
        is_main_wiki: bool,
        remote_url: str | None = None,
        user_info: GitUserInfo | None = None,
    ) -> None:
        """Initializes a repository in `path`.

        A synced main wiki is pushed to `remote_url`; a synced sub-wiki only
        fetches from it.
        """
        raise NotImplementedError

    async def commit_and_sync(self, workspace: Workspace, options: SyncOptions) -> bool:
        """Commits local changes and, unless `commit_only`, syncs with the remote.

        Returns:
            bool: True if the working tree received changes from the remote.
        """
        raise NotImplementedError

    async def force_pull(self, workspace: Workspace, options: SyncOptions) -> bool:
        raise NotImplementedError

    async def sync_or_force_pull(
        self, workspace: Workspace, options: SyncOptions
    ) -> bool:
        """Force-pulls read-only workspaces and commits-and-syncs the rest."""
        if workspace.read_only_mode:
            return await self.force_pull(workspace, options)
        return await self.commit_and_sync(workspace, options)


class WikiService:
    """The content engine that renders and edits a wiki."""

    async def run_filter_in_server(self, workspace_id: str, filter_expr: str) -> list[str]:
        raise NotImplementedError

    async def run_filter_in_browser(
        self, workspace_id: str, filter_expr: str
    ) -> list[str]:
        raise NotImplementedError

    async def general_notification(self, workspace_id: str, message: str) -> None:
        raise NotImplementedError

    async def stop_wiki(self, path: Path) -> None:
        raise NotImplementedError

    async def remove_wiki(
        self,
        path: Path,
        main_wiki_to_unlink: Path | None = None,
        only_remove_link: bool = False,
    ) -> None:
        """Unlinks a sub-wiki from its main wiki and/or deletes the folder."""
        raise NotImplementedError

    async def update_sub_wiki_plugin_content(
        self,
        main_wiki_path: Path,
        new_config: SubWikiRoute | None,
        old_config: SubWikiRoute | None = None,
    ) -> None:
        raise NotImplementedError


class AuthService:
    """Resolves credentials for a storage service."""

    async def get_storage_service_user_info(
        self, service: SupportedStorageServices
    ) -> GitUserInfo | None:
        raise NotImplementedError


class WorkspaceRegistry:
    """Persistent store of workspaces."""

    def get(self, workspace_id: str) -> Workspace | None:
        raise NotImplementedError

    def get_workspaces_as_list(self) -> list[Workspace]:
        """Returns every workspace sorted by its stable `order`."""
        raise NotImplementedError

    def create(self, config: NewWorkspaceConfig) -> Workspace:
        raise NotImplementedError

    def set(self, workspace: Workspace) -> None:
        raise NotImplementedError

    def remove(self, workspace_id: str) -> None:
        raise NotImplementedError

    def get_main_workspace(self, workspace: Workspace) -> Workspace | None:
        raise NotImplementedError

    def get_sub_workspaces_as_list(self, workspace_id: str) -> list[Workspace]:
        raise NotImplementedError

    def set_active_workspace(self, workspace_id: str) -> None:
        raise NotImplementedError

    def get_active_workspace(self) -> Workspace | None:
        raise NotImplementedError

    def get_first_workspace(self) -> Workspace | None:
        raise NotImplementedError


class ViewService:
    """Controls a workspace's running content runtime and its rendered view."""

    async def restart_workspace(self, workspace_id: str) -> None:
        raise NotImplementedError

    async def reload_workspace(self, workspace_id: str) -> None:
        raise NotImplementedError

    async def remove_workspace_view(self, workspace_id: str) -> None:
        raise NotImplementedError


class TextGenerator:
    """A language model endpoint."""

    async def generate(
        self, prompt: str, provider: str, model: str
    ) -> str | AsyncIterator[str]:
        raise NotImplementedError


class Prompter:
    """Asks the user to confirm destructive operations."""

    async def confirm_removal(self, workspace: Workspace) -> RemoveChoice:
        raise NotImplementedError
