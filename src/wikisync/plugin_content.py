"""Reads and edits the main wiki's sub-wiki routing tiddler.

The tiddler starts with a three-line header (tags, title, type) followed by a
blank line and one filter per sub-wiki; a tiddler tagged with the sub-wiki's tag
is saved under `tiddlers/subwiki/<folder>/` of the main wiki.
"""

import logging
from pathlib import Path

from .constants import APP_NAME, SUB_WIKI_PLUGIN_PATH
from .models import SubWikiRoute

logger = logging.getLogger(APP_NAME)

HEADER_LINES = 3

DEFAULT_HEADER = [
    "tags: $:/tags/Config",
    "title: $:/config/FileSystemPaths",
    "type: text/vnd.tiddlywiki",
]


def get_match_part(tag_name: str) -> str:
    return f"[!is[system]kin::to[{tag_name}]"


def get_path_part(folder_name: str) -> str:
    return f"addprefix[/]addprefix[{folder_name}]addprefix[/]addprefix[subwiki]]"


def get_route_line(route: SubWikiRoute) -> str:
    return get_match_part(route.tag_name) + get_path_part(route.folder_name)


def _matches(line: str, route: SubWikiRoute) -> bool:
    return get_match_part(route.tag_name) in line and get_path_part(route.folder_name) in line


def _parse_route(line: str) -> SubWikiRoute | None:
    if not line.startswith("[!is[system]kin::to["):
        return None
    tag_name = line.removeprefix("[!is[system]kin::to[").split("]", 1)[0]
    folder_name = (
        line.removesuffix("]addprefix[/]addprefix[subwiki]]").rsplit("addprefix[", 1)[-1]
    )
    if not tag_name or not folder_name:
        return None
    return SubWikiRoute(tag_name=tag_name, folder_name=folder_name)


def get_plugin_content_path(main_wiki_path: Path) -> Path:
    return main_wiki_path / SUB_WIKI_PLUGIN_PATH


def _read(main_wiki_path: Path) -> tuple[list[str], list[str]]:
    path = get_plugin_content_path(main_wiki_path)
    if not path.exists():
        return list(DEFAULT_HEADER), []
    lines = path.read_text(encoding="utf-8").split("\n")
    header = lines[:HEADER_LINES]
    routes = [line for line in lines[HEADER_LINES:] if line.strip()]
    return header, routes


def get_sub_wiki_plugin_content(main_wiki_path: Path) -> list[SubWikiRoute]:
    """Lists the sub-wikis routed by the main wiki; unreadable files yield []."""
    try:
        _, lines = _read(main_wiki_path)
    except OSError as e:
        logger.error(f"Could not read sub-wiki routes of {main_wiki_path}: {e}")
        return []
    return [route for line in lines if (route := _parse_route(line)) is not None]


def update_sub_wiki_plugin_content(
    main_wiki_path: Path,
    new_config: SubWikiRoute | None,
    old_config: SubWikiRoute | None = None,
) -> None:
    """Adds, replaces or removes one sub-wiki route.

    Args:
        main_wiki_path (Path): The main wiki's folder.
        new_config (SubWikiRoute | None): The route to write; None removes
            `old_config`.
        old_config (SubWikiRoute | None): The route being replaced or removed.

    Raises:
        ValueError: If neither config is given.
    """
    if new_config is None and old_config is None:
        raise ValueError(f"Nothing to update in sub-wiki routes of {main_wiki_path}")

    header, lines = _read(main_wiki_path)

    if new_config is None:
        lines = [line for line in lines if not _matches(line, old_config)]
    elif any(_matches(line, new_config) for line in lines):
        return
    elif old_config is not None:
        lines = [
            get_route_line(new_config) if _matches(line, old_config) else line
            for line in lines
        ]
    else:
        lines.append(get_route_line(new_config))

    path = get_plugin_content_path(main_wiki_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(header) + "\n\n" + "\n".join(lines), encoding="utf-8")
