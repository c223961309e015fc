import os
from pathlib import Path

"""Global constants and path definitions for wikisync.

This module defines the filesystem layout (adhering to XDG standards where applicable),
application identifiers, default commit messages, content-engine filters and the
limits used when summarizing diffs for commit messages.
"""

# --- Identity ---
APP_NAME = "wikisync"
"""str: The human-readable application name."""

# --- Paths ---
_XDG_STATE = os.environ.get("XDG_STATE_HOME")
_BASE_STATE = Path(_XDG_STATE) if _XDG_STATE else Path.home() / ".local/state"

STATE_DIR = _BASE_STATE / "wikisync"
"""Path: The directory for runtime state data (logs, workspace registry)."""

WORKSPACES_FILE = STATE_DIR / "workspaces.json"
"""Path: The JSON file storing every registered workspace."""

LOG_FILE = STATE_DIR / "daemon.log"
"""Path: The file path for the daemon process logs."""

PID_FILE = STATE_DIR / "daemon.pid"
"""Path: The file path storing the daemon's process ID."""

# --- Configuration Paths ---
CONFIG_DIR: Path = Path.home() / ".config/wikisync"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The main configuration file path."""

# --- Git / Sync Constants ---
DEFAULT_COMMIT_MESSAGE = "Wiki updated by wikisync"
"""str: Commit message used when syncing a remote-backed workspace."""

DEFAULT_BACKUP_MESSAGE = "Backup with wikisync"
"""str: Commit message used for local-only backups and as the AI fallback."""

INIT_COMMIT_MESSAGE = "Initialize with wikisync"
"""str: Commit message of the first commit in a freshly initialized wiki."""

DEFAULT_BRANCH = "main"
"""str: Branch used when credentials do not name one."""

REMOTE_NAME = "origin"
"""str: The git remote wikisync pushes to and pulls from."""

# --- Content Engine ---
TIDDLERS_PATH = "tiddlers"
"""str: Folder inside a wiki that holds its content files."""

SUB_WIKI_LINK_FOLDER = "subwiki"
"""str: Folder inside a main wiki's tiddlers/ that links sub-wiki folders."""

SUB_WIKI_PLUGIN_PATH = Path("plugins") / "linonetwo" / "sub-wiki" / "FileSystemPaths.tid"
"""Path: Relative path of the routing tiddler listing every sub-wiki."""

DRAFT_FILTER = "[all[]is[draft]]"
"""str: Server-side filter returning titles of draft tiddlers."""

UNSAVED_EDIT_FILTER = "[list[$:/StoryList]has:field[wysiwyg]]"
"""str: Browser-side filter returning titles with an open unsaved editor."""

DRAFT_BLOCKED_NOTIFICATION = (
    "Sync skipped: there are unsaved drafts. Save or discard them to resume syncing."
)
"""str: Advisory shown inside the wiki when a sync is blocked by drafts."""

SHUTDOWN_SYNC_NOTIFICATION = "Syncing wikis before shutdown..."
"""str: Desktop notification shown before the shutdown flush starts."""

# --- Commit Message Synthesis ---
AI_COMMIT_TIMEOUT_MS = 5000
"""int: Default time budget for generating a commit message."""

MAX_DIFF_CHARS = 3000
"""int: Hard cap on the diff text embedded in the generation prompt."""

MAX_PLUGIN_CHUNK_CHARS = 1000
"""int: Plugin diff chunks at or above this size are replaced by a placeholder."""

MAX_UNTRACKED_FILES = 5
"""int: Untracked files sampled when there is no diff at all."""

MAX_UNTRACKED_FILE_CHARS = 500
"""int: Characters read from each sampled untracked file."""

TRUNCATION_MARKER = "\n... (truncated)"
"""str: Appended to the diff text when it was cut at MAX_DIFF_CHARS."""
