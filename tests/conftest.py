"""Shared fixtures: a file-backed registry and mocked collaborators."""

from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from wikisync.config import Config
from wikisync.interfaces import AuthService, GitService, ViewService, WikiService
from wikisync.models import GitUserInfo, SupportedStorageServices, Workspace
from wikisync.registry import JsonWorkspaceRegistry


@pytest.fixture(autouse=True)
def clear_config_cache() -> Any:
    """Ensures every test starts with a clean config cache."""
    Config._global_cache = None
    yield
    Config._global_cache = None


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def registry(tmp_path: Path) -> JsonWorkspaceRegistry:
    return JsonWorkspaceRegistry(tmp_path / "workspaces.json")


@pytest.fixture
def user_info() -> GitUserInfo:
    return GitUserInfo(username="alice", email="alice@example.com", token="s3cret")


@pytest.fixture
def git(mocker: MagicMock) -> MagicMock:
    git = mocker.MagicMock(spec=GitService)
    git.has_git.return_value = False
    git.commit_and_sync.return_value = False
    git.force_pull.return_value = False
    git.sync_or_force_pull.return_value = False
    return git


@pytest.fixture
def wiki(mocker: MagicMock) -> MagicMock:
    wiki = mocker.MagicMock(spec=WikiService)
    wiki.run_filter_in_server.return_value = []
    wiki.run_filter_in_browser.return_value = []
    return wiki


@pytest.fixture
def auth(mocker: MagicMock, user_info: GitUserInfo) -> MagicMock:
    auth = mocker.MagicMock(spec=AuthService)
    auth.get_storage_service_user_info.return_value = user_info
    return auth


@pytest.fixture
def views(mocker: MagicMock) -> MagicMock:
    return mocker.MagicMock(spec=ViewService)


@pytest.fixture
def make_workspace(
    tmp_path: Path, registry: JsonWorkspaceRegistry
) -> Callable[..., Workspace]:
    """Builds a workspace, stores it in the registry and returns it.

    Remote workspaces default to GitHub with a URL derived from the id.
    """

    def factory(workspace_id: str, remote: bool = True, **kwargs: Any) -> Workspace:
        values: dict[str, Any] = {
            "id": workspace_id,
            "name": workspace_id.upper(),
            "wiki_folder_location": tmp_path / "wikis" / workspace_id,
            "order": len(registry.get_workspaces_as_list()),
        }
        if remote:
            values["storage_service"] = SupportedStorageServices.GITHUB
            values["git_url"] = f"https://github.com/alice/{workspace_id}.git"
        values.update(kwargs)
        workspace = Workspace(**values)
        registry.set(workspace)
        return workspace

    return factory
