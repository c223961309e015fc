import asyncio
import logging
import shutil
from pathlib import Path

from .constants import (
    APP_NAME,
    DRAFT_FILTER,
    SUB_WIKI_LINK_FOLDER,
    TIDDLERS_PATH,
)
from .interfaces import WikiService, WorkspaceRegistry
from .models import SubWikiRoute
from .plugin_content import update_sub_wiki_plugin_content
from .system import SystemStrategy, get_system

logger = logging.getLogger(APP_NAME)


def find_draft_titles(wiki_folder: Path) -> list[str]:
    """Returns the titles of `.tid` files carrying a `draft.of` field.

    Only the header block (up to the first blank line) of each file is read.
    """
    tiddlers = wiki_folder / TIDDLERS_PATH
    if not tiddlers.is_dir():
        return []

    titles = []
    for path in tiddlers.rglob("*.tid"):
        fields = {}
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            for line in f:
                if not line.strip():
                    break
                key, sep, value = line.partition(":")
                if sep:
                    fields[key.strip()] = value.strip()
        if "draft.of" in fields:
            titles.append(fields.get("title", path.stem))
    return sorted(titles)


def get_sub_wiki_link_path(main_wiki_path: Path, sub_wiki_path: Path) -> Path:
    return main_wiki_path / TIDDLERS_PATH / SUB_WIKI_LINK_FOLDER / sub_wiki_path.name


class LocalWikiService(WikiService):
    """Content engine adapter working on wiki folders directly.

    No renderer is attached, so browser-side filters see no open editors and
    notifications are shown through the desktop notifier.

    Attributes:
        registry (WorkspaceRegistry): Resolves workspace ids to folders.
        system (SystemStrategy): Desktop notification backend.
    """

    def __init__(
        self, registry: WorkspaceRegistry, system: SystemStrategy | None = None
    ):
        self.registry = registry
        self.system = system or get_system()

    def _folder(self, workspace_id: str) -> Path:
        workspace = self.registry.get(workspace_id)
        if workspace is None:
            raise KeyError(f"Unknown workspace {workspace_id}")
        return workspace.wiki_folder_location

    async def run_filter_in_server(self, workspace_id: str, filter_expr: str) -> list[str]:
        if filter_expr != DRAFT_FILTER:
            raise ValueError(f"Unsupported filter: {filter_expr}")
        return await asyncio.to_thread(find_draft_titles, self._folder(workspace_id))

    async def run_filter_in_browser(
        self, workspace_id: str, filter_expr: str
    ) -> list[str]:
        return []

    async def general_notification(self, workspace_id: str, message: str) -> None:
        workspace = self.registry.get(workspace_id)
        title = workspace.name if workspace else APP_NAME
        await asyncio.to_thread(self.system.notify, title, message)

    async def link_sub_wiki(self, main_wiki_path: Path, sub_wiki_path: Path) -> None:
        """Symlinks a sub-wiki folder into the main wiki's `tiddlers/subwiki`."""
        link = get_sub_wiki_link_path(main_wiki_path, sub_wiki_path)
        if link.exists() or link.is_symlink():
            return
        link.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(link.symlink_to, sub_wiki_path, True)
        logger.info(f"LINK {sub_wiki_path.name}: linked into {main_wiki_path.name}")

    async def stop_wiki(self, path: Path) -> None:
        logger.info(f"STOP {path.name}: content runtime stopped.")

    async def remove_wiki(
        self,
        path: Path,
        main_wiki_to_unlink: Path | None = None,
        only_remove_link: bool = False,
    ) -> None:
        """Unlinks a sub-wiki from its main wiki and/or deletes the folder.

        Args:
            path (Path): The wiki folder.
            main_wiki_to_unlink (Path | None): The main wiki whose
                `tiddlers/subwiki` link to `path` is removed.
            only_remove_link (bool): Keep the wiki folder itself.
        """
        if main_wiki_to_unlink is not None:
            link = get_sub_wiki_link_path(main_wiki_to_unlink, path)
            if link.is_symlink() or link.is_file():
                await asyncio.to_thread(link.unlink)
            elif link.is_dir():
                await asyncio.to_thread(shutil.rmtree, link)
            logger.info(f"UNLINK {path.name}: detached from {main_wiki_to_unlink.name}")
        if only_remove_link:
            return
        if path.exists():
            await asyncio.to_thread(shutil.rmtree, path)
            logger.info(f"DELETE {path}: wiki folder removed.")

    async def update_sub_wiki_plugin_content(
        self,
        main_wiki_path: Path,
        new_config: SubWikiRoute | None,
        old_config: SubWikiRoute | None = None,
    ) -> None:
        await asyncio.to_thread(
            update_sub_wiki_plugin_content, main_wiki_path, new_config, old_config
        )
