"""Tests for workspace creation and removal."""

from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from wikisync.errors import (
    InitWikiGitError,
    InitWikiGitRevertError,
    NoGitUserInfoError,
)
from wikisync.interfaces import Prompter
from wikisync.models import (
    GitUserInfo,
    NewWorkspaceConfig,
    RemoveChoice,
    SubWikiRoute,
    SupportedStorageServices,
    Workspace,
)
from wikisync.registry import JsonWorkspaceRegistry
from wikisync.scheduler import IntervalScheduler
from wikisync.transaction import WikiGitWorkspace


@pytest.fixture
def scheduler(mocker: MagicMock) -> MagicMock:
    return mocker.MagicMock(spec=IntervalScheduler)


@pytest.fixture
def prompter(mocker: MagicMock) -> MagicMock:
    prompter = mocker.MagicMock(spec=Prompter)
    prompter.confirm_removal.return_value = RemoveChoice.CANCEL
    return prompter


@pytest.fixture
def manager(
    registry: JsonWorkspaceRegistry,
    git: MagicMock,
    wiki: MagicMock,
    views: MagicMock,
    scheduler: MagicMock,
    prompter: MagicMock,
) -> WikiGitWorkspace:
    return WikiGitWorkspace(registry, git, wiki, views, scheduler, prompter)


@pytest.mark.asyncio
async def test_create_local_workspace(
    manager: WikiGitWorkspace,
    registry: JsonWorkspaceRegistry,
    git: MagicMock,
    tmp_path: Path,
) -> None:
    folder = tmp_path / "notes"

    workspace = await manager.init_wiki_git_transaction(
        NewWorkspaceConfig(name="notes", wiki_folder_location=folder)
    )

    git.init_wiki_git.assert_awaited_once_with(
        folder, is_synced=False, is_main_wiki=True
    )
    assert registry.get(workspace.id) is workspace
    assert registry.get_active_workspace() is workspace


@pytest.mark.asyncio
async def test_create_makes_new_workspace_the_only_active_one(
    manager: WikiGitWorkspace,
    registry: JsonWorkspaceRegistry,
    make_workspace: Callable[..., Workspace],
    tmp_path: Path,
) -> None:
    old = make_workspace("old", remote=False, active=True)

    new = await manager.init_wiki_git_transaction(
        NewWorkspaceConfig(name="new", wiki_folder_location=tmp_path / "new")
    )

    assert new.active is True
    assert old.active is False


@pytest.mark.asyncio
async def test_create_remote_sub_only_fetches(
    manager: WikiGitWorkspace,
    git: MagicMock,
    user_info: GitUserInfo,
    tmp_path: Path,
) -> None:
    folder = tmp_path / "journal"
    config = NewWorkspaceConfig(
        name="journal",
        wiki_folder_location=folder,
        storage_service=SupportedStorageServices.GITHUB,
        git_url="https://github.com/alice/journal.git",
        is_sub_wiki=True,
        main_wiki_to_link=tmp_path / "main",
        tag_name="Journal",
    )

    await manager.init_wiki_git_transaction(config, user_info)

    git.init_wiki_git.assert_awaited_once_with(
        folder,
        is_synced=True,
        is_main_wiki=False,
        remote_url="https://github.com/alice/journal.git",
        user_info=user_info,
    )


@pytest.mark.asyncio
async def test_existing_repository_is_not_reinitialized(
    manager: WikiGitWorkspace,
    registry: JsonWorkspaceRegistry,
    git: MagicMock,
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    git.has_git.return_value = True

    workspace = await manager.init_wiki_git_transaction(
        NewWorkspaceConfig(name="notes", wiki_folder_location=tmp_path / "notes")
    )

    git.init_wiki_git.assert_not_called()
    assert registry.get(workspace.id) is workspace
    assert "repository exists" in caplog.text


@pytest.mark.asyncio
async def test_remote_without_credentials_is_reverted(
    manager: WikiGitWorkspace,
    registry: JsonWorkspaceRegistry,
    git: MagicMock,
    wiki: MagicMock,
    tmp_path: Path,
) -> None:
    folder = tmp_path / "notes"
    config = NewWorkspaceConfig(
        name="notes",
        wiki_folder_location=folder,
        storage_service=SupportedStorageServices.GITHUB,
        git_url="https://github.com/alice/notes.git",
    )

    with pytest.raises(InitWikiGitError, match="no git user info for synced wiki") as info:
        await manager.init_wiki_git_transaction(config, None)

    assert isinstance(info.value.__cause__, NoGitUserInfoError)
    git.init_wiki_git.assert_not_called()
    assert registry.get_workspaces_as_list() == []
    wiki.remove_wiki.assert_awaited_once_with(folder)


@pytest.mark.asyncio
async def test_init_failure_message_carries_traceback(
    manager: WikiGitWorkspace, git: MagicMock, tmp_path: Path
) -> None:
    git.init_wiki_git.side_effect = OSError("disk full")

    with pytest.raises(InitWikiGitError) as info:
        await manager.init_wiki_git_transaction(
            NewWorkspaceConfig(name="notes", wiki_folder_location=tmp_path / "notes")
        )

    assert "disk full" in info.value.description
    assert "Traceback" in info.value.description
    assert info.value.category == "InitWikiGitError"


@pytest.mark.asyncio
async def test_sub_init_failure_detaches_from_main(
    manager: WikiGitWorkspace,
    registry: JsonWorkspaceRegistry,
    git: MagicMock,
    wiki: MagicMock,
    tmp_path: Path,
) -> None:
    folder = tmp_path / "journal"
    main_folder = tmp_path / "main"
    git.init_wiki_git.side_effect = OSError("permission denied")
    config = NewWorkspaceConfig(
        name="journal",
        wiki_folder_location=folder,
        is_sub_wiki=True,
        main_wiki_to_link=main_folder,
        tag_name="Journal",
    )

    with pytest.raises(InitWikiGitError):
        await manager.init_wiki_git_transaction(config)

    assert registry.get_workspaces_as_list() == []
    wiki.remove_wiki.assert_awaited_once_with(folder, main_folder)
    wiki.update_sub_wiki_plugin_content.assert_awaited_once_with(
        main_folder, None, SubWikiRoute(tag_name="Journal", folder_name="journal")
    )


@pytest.mark.asyncio
async def test_cleanup_failure_raises_revert_error(
    manager: WikiGitWorkspace,
    registry: JsonWorkspaceRegistry,
    git: MagicMock,
    wiki: MagicMock,
    tmp_path: Path,
) -> None:
    git.init_wiki_git.side_effect = OSError("disk full")
    wiki.remove_wiki.side_effect = PermissionError("folder locked")

    with pytest.raises(InitWikiGitRevertError, match="folder locked") as info:
        await manager.init_wiki_git_transaction(
            NewWorkspaceConfig(name="notes", wiki_folder_location=tmp_path / "notes")
        )

    assert not isinstance(info.value, InitWikiGitError)
    assert isinstance(info.value.__cause__, PermissionError)
    assert registry.get_workspaces_as_list() == []


@pytest.mark.asyncio
async def test_remove_cancelled_changes_nothing(
    manager: WikiGitWorkspace,
    registry: JsonWorkspaceRegistry,
    wiki: MagicMock,
    scheduler: MagicMock,
    make_workspace: Callable[..., Workspace],
) -> None:
    make_workspace("main")

    assert await manager.remove_workspace("main") is False

    assert registry.get("main") is not None
    wiki.stop_wiki.assert_not_called()
    scheduler.stop.assert_not_called()


@pytest.mark.asyncio
async def test_remove_reference_keeps_main_folder(
    manager: WikiGitWorkspace,
    registry: JsonWorkspaceRegistry,
    wiki: MagicMock,
    views: MagicMock,
    scheduler: MagicMock,
    prompter: MagicMock,
    make_workspace: Callable[..., Workspace],
) -> None:
    main = make_workspace("main", active=True)
    other = make_workspace("other")
    prompter.confirm_removal.return_value = RemoveChoice.REMOVE_REFERENCE

    assert await manager.remove_workspace("main") is True

    wiki.stop_wiki.assert_awaited_once_with(main.wiki_folder_location)
    scheduler.stop.assert_called_once_with("main")
    wiki.remove_wiki.assert_not_called()
    views.remove_workspace_view.assert_awaited_once_with("main")
    assert registry.get("main") is None
    assert registry.get_active_workspace() is other


@pytest.mark.asyncio
async def test_remove_and_delete_main(
    manager: WikiGitWorkspace,
    wiki: MagicMock,
    prompter: MagicMock,
    make_workspace: Callable[..., Workspace],
) -> None:
    main = make_workspace("main")
    prompter.confirm_removal.return_value = RemoveChoice.REMOVE_AND_DELETE

    await manager.remove_workspace("main")

    wiki.remove_wiki.assert_awaited_once_with(main.wiki_folder_location)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("choice", "only_link"),
    [(RemoveChoice.REMOVE_REFERENCE, True), (RemoveChoice.REMOVE_AND_DELETE, False)],
)
async def test_remove_sub_always_detaches(
    manager: WikiGitWorkspace,
    wiki: MagicMock,
    prompter: MagicMock,
    make_workspace: Callable[..., Workspace],
    choice: RemoveChoice,
    only_link: bool,
) -> None:
    main = make_workspace("main")
    sub = make_workspace(
        "journal",
        is_sub_wiki=True,
        main_wiki_id="main",
        main_wiki_to_link=main.wiki_folder_location,
        tag_name="Journal",
    )
    prompter.confirm_removal.return_value = choice

    await manager.remove_workspace("journal")

    wiki.update_sub_wiki_plugin_content.assert_awaited_once_with(
        main.wiki_folder_location,
        None,
        SubWikiRoute(tag_name="Journal", folder_name="journal"),
    )
    wiki.remove_wiki.assert_awaited_once_with(
        sub.wiki_folder_location, main.wiki_folder_location, only_remove_link=only_link
    )


@pytest.mark.asyncio
async def test_remove_steps_are_best_effort(
    manager: WikiGitWorkspace,
    registry: JsonWorkspaceRegistry,
    wiki: MagicMock,
    views: MagicMock,
    prompter: MagicMock,
    make_workspace: Callable[..., Workspace],
    caplog: pytest.LogCaptureFixture,
) -> None:
    make_workspace("main")
    prompter.confirm_removal.return_value = RemoveChoice.REMOVE_AND_DELETE
    wiki.stop_wiki.side_effect = RuntimeError("not running")
    wiki.remove_wiki.side_effect = OSError("busy")

    assert await manager.remove_workspace("main") is True

    assert registry.get("main") is None
    views.remove_workspace_view.assert_awaited_once_with("main")
    assert "not running" in caplog.text
    assert "busy" in caplog.text


@pytest.mark.asyncio
async def test_failed_detach_still_removes_sub_wiki(
    manager: WikiGitWorkspace,
    registry: JsonWorkspaceRegistry,
    wiki: MagicMock,
    prompter: MagicMock,
    make_workspace: Callable[..., Workspace],
    caplog: pytest.LogCaptureFixture,
) -> None:
    main = make_workspace("main")
    sub = make_workspace(
        "journal",
        is_sub_wiki=True,
        main_wiki_id="main",
        main_wiki_to_link=main.wiki_folder_location,
        tag_name="Journal",
    )
    prompter.confirm_removal.return_value = RemoveChoice.REMOVE_REFERENCE
    wiki.update_sub_wiki_plugin_content.side_effect = OSError("read-only tiddler")

    assert await manager.remove_workspace("journal") is True

    wiki.remove_wiki.assert_awaited_once_with(
        sub.wiki_folder_location, main.wiki_folder_location, only_remove_link=True
    )
    assert registry.get("journal") is None
    assert "read-only tiddler" in caplog.text


@pytest.mark.asyncio
async def test_failed_unregister_still_clears_view(
    manager: WikiGitWorkspace,
    registry: JsonWorkspaceRegistry,
    views: MagicMock,
    prompter: MagicMock,
    make_workspace: Callable[..., Workspace],
    mocker: MagicMock,
    caplog: pytest.LogCaptureFixture,
) -> None:
    make_workspace("notes")
    make_workspace("journal")
    prompter.confirm_removal.return_value = RemoveChoice.REMOVE_REFERENCE
    mocker.patch.object(registry, "remove", side_effect=OSError("disk full"))
    activate = mocker.spy(registry, "set_active_workspace")

    assert await manager.remove_workspace("journal") is True

    views.remove_workspace_view.assert_awaited_once_with("journal")
    activate.assert_called_once_with("notes")
    assert "disk full" in caplog.text


@pytest.mark.asyncio
async def test_remove_unknown_workspace(
    manager: WikiGitWorkspace, prompter: MagicMock
) -> None:
    assert await manager.remove_workspace("missing") is False
    prompter.confirm_removal.assert_not_called()
