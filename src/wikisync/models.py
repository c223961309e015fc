"""Data model shared by the sync engine, registry and adapters."""

from dataclasses import asdict, dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any


class SupportedStorageServices(str, Enum):
    """Where a workspace's git history lives."""

    LOCAL = "local"
    GITHUB = "github"
    GITLAB = "gitlab"
    CODEBERG = "codeberg"
    GITEA = "gitea"


class RemoveChoice(Enum):
    """Answers of the removal confirmation dialog, in button order."""

    REMOVE_REFERENCE = 0
    REMOVE_AND_DELETE = 1
    CANCEL = 2


@dataclass
class GitUserInfo:
    """Credentials for one storage service.

    Attributes:
        username (str): Account name used for authentication and commits.
        email (str): Commit author email.
        token (str): Access token embedded in the remote URL while pushing.
        branch (str): Remote branch to sync against.
    """

    username: str
    email: str
    token: str
    branch: str = "main"


@dataclass
class SyncOptions:
    """Per-call options handed to the git capability.

    Attributes:
        dir (Path): The working tree to operate on.
        commit_only (bool): Commit local changes without any network access.
        commit_message (str | None): Explicit message; None lets the git service
            generate one.
        remote_url (str | None): Remote to sync with.
        user_info (GitUserInfo | None): Credentials for the remote.
    """

    dir: Path
    commit_only: bool = False
    commit_message: str | None = None
    remote_url: str | None = None
    user_info: GitUserInfo | None = None


@dataclass
class NewWorkspaceConfig:
    """A request to create a workspace."""

    name: str
    wiki_folder_location: Path
    storage_service: SupportedStorageServices = SupportedStorageServices.LOCAL
    git_url: str | None = None
    is_sub_wiki: bool = False
    main_wiki_id: str | None = None
    main_wiki_to_link: Path | None = None
    tag_name: str | None = None
    sync_on_interval: bool = False
    backup_on_interval: bool = True
    enable_file_system_watch: bool = True
    read_only_mode: bool = False
    page_type: str | None = None


@dataclass
class Workspace:
    """One content tree tracked by the application.

    A sub-wiki (``is_sub_wiki``) lives in its own folder that is linked into the
    ``tiddlers/subwiki`` folder of its main wiki; tiddlers tagged ``tag_name`` are
    routed there by the main wiki's FileSystemPaths tiddler.
    """

    id: str
    name: str
    wiki_folder_location: Path
    storage_service: SupportedStorageServices = SupportedStorageServices.LOCAL
    git_url: str | None = None
    is_sub_wiki: bool = False
    main_wiki_id: str | None = None
    main_wiki_to_link: Path | None = None
    tag_name: str | None = None
    hibernated: bool = False
    sync_on_interval: bool = False
    backup_on_interval: bool = True
    enable_file_system_watch: bool = True
    read_only_mode: bool = False
    active: bool = False
    order: int = 0
    page_type: str | None = None

    @property
    def is_wiki(self) -> bool:
        """Whether this workspace carries wiki content (dedicated pages do not)."""
        return self.page_type is None

    @property
    def is_remote(self) -> bool:
        return self.storage_service != SupportedStorageServices.LOCAL

    @classmethod
    def from_config(
        cls, workspace_id: str, config: NewWorkspaceConfig, order: int = 0
    ) -> "Workspace":
        values = {f.name: getattr(config, f.name) for f in fields(config)}
        return cls(id=workspace_id, order=order, **values)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["wiki_folder_location"] = str(self.wiki_folder_location)
        data["main_wiki_to_link"] = (
            str(self.main_wiki_to_link) if self.main_wiki_to_link else None
        )
        data["storage_service"] = self.storage_service.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Workspace":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values["wiki_folder_location"] = Path(values["wiki_folder_location"])
        if values.get("main_wiki_to_link"):
            values["main_wiki_to_link"] = Path(values["main_wiki_to_link"])
        values["storage_service"] = SupportedStorageServices(
            values.get("storage_service", SupportedStorageServices.LOCAL.value)
        )
        return cls(**values)


@dataclass
class SubWikiRoute:
    """One line of the main wiki's sub-wiki routing tiddler."""

    tag_name: str
    folder_name: str

