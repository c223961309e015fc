"""Commit message generation from the pending diff of a wiki.

The diff is trimmed before it reaches the language model: plugin payloads are
collapsed into one-line placeholders and the whole text is capped, so a large
generated plugin bundle never crowds out the hand-written changes.
"""

import asyncio
import logging
import re
from collections.abc import Awaitable
from pathlib import Path
from typing import TypeVar

from .config import AIConfig
from .constants import (
    APP_NAME,
    MAX_DIFF_CHARS,
    MAX_PLUGIN_CHUNK_CHARS,
    MAX_UNTRACKED_FILE_CHARS,
    MAX_UNTRACKED_FILES,
    TRUNCATION_MARKER,
)
from .git_wrapper import GitRepo
from .interfaces import TextGenerator
from .llm import collect_text

logger = logging.getLogger(APP_NAME)

T = TypeVar("T")

PLUGIN_FILE_PATTERN = re.compile(r"(\$__plugins_|(^|/)plugins/)")
"""re.Pattern: Matches tiddler files that hold an embedded plugin bundle."""

DIFF_FILE_HEADER = re.compile(r"^diff --git a/(?P<path>.+?) b/", re.MULTILINE)

COMMIT_MESSAGE_PROMPT = (
    "You write git commit messages for a personal wiki that is backed up "
    "automatically. Summarize the changes below in a single line of at most 72 "
    "characters, in the imperative mood, naming the notes that changed. Reply "
    "with the commit message only, without quotes or explanations.\n\n"
    "Changes:\n{diff}"
)


def is_ai_generate_backup_title_enabled(ai: AIConfig) -> bool:
    """Whether generation is switched on and a default provider and model are set."""
    return bool(ai.generate_backup_title and ai.provider and ai.model)


def is_plugin_file(path: str) -> bool:
    return PLUGIN_FILE_PATTERN.search(path) is not None


def plugin_name(path: str) -> str:
    """Derives a readable plugin name from a plugin file path.

    `tiddlers/$__plugins_tiddlywiki_markdown.json` becomes `tiddlywiki_markdown`,
    `plugins/linonetwo/sub-wiki/plugin.info` becomes `linonetwo/sub-wiki`.
    """
    name = Path(path).name
    if "$__plugins_" in name:
        return Path(name.split("$__plugins_", 1)[1]).stem
    segments = path.split("plugins/", 1)[-1].split("/")
    return "/".join(segments[:2]) if len(segments) > 2 else Path(segments[0]).stem


def split_diff_chunks(diff: str) -> list[tuple[str | None, str]]:
    """Splits a unified diff into per-file chunks.

    Returns:
        list[tuple[str | None, str]]: `(path, chunk)` pairs. Text before the first
        file header comes back with a None path.
    """
    chunks: list[tuple[str | None, str]] = []
    starts = [m.start() for m in DIFF_FILE_HEADER.finditer(diff)]
    if not starts or starts[0] > 0:
        head = diff[: starts[0]] if starts else diff
        if head.strip():
            chunks.append((None, head.rstrip("\n")))
    for index, start in enumerate(starts):
        end = starts[index + 1] if index + 1 < len(starts) else len(diff)
        chunk = diff[start:end].rstrip("\n")
        match = DIFF_FILE_HEADER.match(chunk)
        chunks.append((match.group("path") if match else None, chunk))
    return chunks


def filter_plugin_noise(diff: str) -> str:
    """Replaces large plugin chunks with a one-line placeholder.

    Small plugin chunks are usually hand-edited plugin configuration and are kept.
    """
    parts = []
    for path, chunk in split_diff_chunks(diff):
        if path is not None and is_plugin_file(path) and len(chunk) >= MAX_PLUGIN_CHUNK_CHARS:
            parts.append(f"[Plugin file changed: {plugin_name(path)}]")
        else:
            parts.append(chunk)
    return "\n".join(parts)


def truncate_diff(text: str) -> str:
    if len(text) <= MAX_DIFF_CHARS:
        return text
    return text[:MAX_DIFF_CHARS] + TRUNCATION_MARKER


async def build_untracked_manifest(repo_path: Path, files: list[str]) -> str:
    """Describes new files when git has no diff to show for them.

    Reads the head of at most MAX_UNTRACKED_FILES files and notes how many were
    left out.
    """
    sections = []
    for name in files[:MAX_UNTRACKED_FILES]:
        try:
            content = await asyncio.to_thread(
                (repo_path / name).read_text, encoding="utf-8", errors="replace"
            )
        except OSError as e:
            logger.debug(f"Could not read untracked file {name}: {e}")
            content = ""
        sections.append(f"New file: {name}\n{content[:MAX_UNTRACKED_FILE_CHARS]}")
    remaining = len(files) - MAX_UNTRACKED_FILES
    if remaining > 0:
        sections.append(f"... and {remaining} more files")
    return "\n\n".join(sections)


async def collect_diff(repo: GitRepo) -> str:
    """Gathers unstaged and staged changes, or a manifest of new files."""
    unstaged = await repo.diff()
    staged = await repo.diff(cached=True)
    diff = "\n".join(part for part in (unstaged, staged) if part)
    if diff.strip():
        return diff

    untracked = await repo.get_untracked_files()
    if not untracked:
        return ""
    return await build_untracked_manifest(repo.path, untracked)


async def race_with_timeout(awaitable: Awaitable[T], timeout_ms: int) -> T | None:
    """Returns the awaitable's result, or None if `timeout_ms` passes first.

    The losing task is left running and its eventual outcome is discarded.
    """
    task = asyncio.ensure_future(awaitable)
    done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000)
    if task in done:
        return task.result()
    task.add_done_callback(_discard_outcome)
    return None


def _discard_outcome(task: asyncio.Future) -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.debug(f"Late commit message generation failed: {task.exception()}")


async def _generate(generator: TextGenerator, prompt: str, ai: AIConfig) -> str:
    result = await generator.generate(prompt, ai.provider, ai.model)
    return await collect_text(result)


async def generate_ai_commit_message(
    wiki_folder_location: Path, ai: AIConfig, generator: TextGenerator | None
) -> str | None:
    """Asks the configured language model to describe the pending changes.

    Never raises: missing configuration, an empty diff, a timeout and any
    generation failure all yield None so the caller falls back to its default
    message.

    Args:
        wiki_folder_location (Path): The working tree to describe.
        ai (AIConfig): Generation preferences.
        generator (TextGenerator | None): The language model endpoint.

    Returns:
        str | None: The stripped commit message, or None.
    """
    if generator is None or not is_ai_generate_backup_title_enabled(ai):
        return None

    try:
        diff = await collect_diff(GitRepo(wiki_folder_location))
        if not diff.strip():
            logger.debug(f"No changes to describe in {wiki_folder_location.name}")
            return None

        prompt = COMMIT_MESSAGE_PROMPT.format(
            diff=truncate_diff(filter_plugin_noise(diff))
        )
        message = await race_with_timeout(_generate(generator, prompt, ai), ai.timeout)
        if message is None:
            logger.info(
                f"AI TIMEOUT {wiki_folder_location.name}: no commit message "
                f"after {ai.timeout}ms"
            )
            return None
        return message.strip() or None
    except Exception as e:
        logger.warning(f"AI commit message failed for {wiki_folder_location.name}: {e}")
        return None
