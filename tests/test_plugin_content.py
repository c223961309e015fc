"""Tests for the sub-wiki routing tiddler."""

from pathlib import Path

import pytest

from wikisync.models import SubWikiRoute
from wikisync.plugin_content import (
    get_plugin_content_path,
    get_route_line,
    get_sub_wiki_plugin_content,
    update_sub_wiki_plugin_content,
)

JOURNAL = SubWikiRoute(tag_name="Journal", folder_name="journal")
RECIPES = SubWikiRoute(tag_name="Recipes", folder_name="recipes")


def test_route_line_format() -> None:
    assert get_route_line(JOURNAL) == (
        "[!is[system]kin::to[Journal]addprefix[/]addprefix[journal]"
        "addprefix[/]addprefix[subwiki]]"
    )


def test_add_creates_tiddler_with_header(tmp_path: Path) -> None:
    update_sub_wiki_plugin_content(tmp_path, JOURNAL)

    lines = get_plugin_content_path(tmp_path).read_text().split("\n")
    assert lines[0] == "tags: $:/tags/Config"
    assert lines[1] == "title: $:/config/FileSystemPaths"
    assert lines[3] == ""
    assert lines[4] == get_route_line(JOURNAL)
    assert get_sub_wiki_plugin_content(tmp_path) == [JOURNAL]


def test_add_is_idempotent(tmp_path: Path) -> None:
    update_sub_wiki_plugin_content(tmp_path, JOURNAL)
    update_sub_wiki_plugin_content(tmp_path, JOURNAL)
    update_sub_wiki_plugin_content(tmp_path, RECIPES)

    assert get_sub_wiki_plugin_content(tmp_path) == [JOURNAL, RECIPES]


def test_replace_keeps_position(tmp_path: Path) -> None:
    update_sub_wiki_plugin_content(tmp_path, JOURNAL)
    update_sub_wiki_plugin_content(tmp_path, RECIPES)
    diary = SubWikiRoute(tag_name="Diary", folder_name="journal")

    update_sub_wiki_plugin_content(tmp_path, diary, JOURNAL)

    assert get_sub_wiki_plugin_content(tmp_path) == [diary, RECIPES]


def test_remove(tmp_path: Path) -> None:
    update_sub_wiki_plugin_content(tmp_path, JOURNAL)
    update_sub_wiki_plugin_content(tmp_path, RECIPES)

    update_sub_wiki_plugin_content(tmp_path, None, JOURNAL)

    assert get_sub_wiki_plugin_content(tmp_path) == [RECIPES]


def test_custom_header_is_preserved(tmp_path: Path) -> None:
    path = get_plugin_content_path(tmp_path)
    path.parent.mkdir(parents=True)
    path.write_text("tags: $:/tags/Config\ntitle: $:/config/FileSystemPaths\ntype: text/plain\n\n")

    update_sub_wiki_plugin_content(tmp_path, JOURNAL)

    assert path.read_text().split("\n")[2] == "type: text/plain"


def test_missing_tiddler_lists_nothing(tmp_path: Path) -> None:
    assert get_sub_wiki_plugin_content(tmp_path) == []


def test_nothing_to_update_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        update_sub_wiki_plugin_content(tmp_path, None, None)
