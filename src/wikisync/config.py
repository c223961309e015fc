import logging
import re
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .constants import AI_COMMIT_TIMEOUT_MS, APP_NAME, CONFIG_FILE

logger = logging.getLogger(APP_NAME)


def parse_size(value: int | str) -> int:
    """Converts human-readable size strings (e.g., '100MB') to bytes."""
    if isinstance(value, int):
        return value
    match = re.match(r"^(\d+(?:\.\d+)?)\s*([kmg]b?)$", str(value).strip().lower())
    if not match:
        raise ValueError(f"Invalid size format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {
        "k": 1024,
        "kb": 1024,
        "m": 1024**2,
        "mb": 1024**2,
        "g": 1024**3,
        "gb": 1024**3,
    }
    return int(num * multiplier[unit])


def parse_time(value: int | str) -> int:
    """Converts human-readable time strings (e.g., '30m', '500ms') to milliseconds.

    Bare integers are taken as milliseconds already.
    """
    if isinstance(value, int):
        return value
    match = re.match(
        r"^(\d+(?:\.\d+)?)\s*(ms|s|sec|m|min|h|hr)s?$", str(value).strip().lower()
    )
    if not match:
        raise ValueError(f"Invalid time format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {
        "ms": 1,
        "s": 1000,
        "sec": 1000,
        "m": 60_000,
        "min": 60_000,
        "h": 3_600_000,
        "hr": 3_600_000,
    }
    return int(num * multiplier[unit])


@dataclass
class SyncConfig:
    """Synchronization preferences.

    Attributes:
        sync_only_when_no_draft (bool): Skip syncs while the wiki holds drafts.
        sync_debounce_interval (int): Milliseconds between interval syncs.
        draft_check_fail_open (bool): Let syncs through when the draft query fails.
        coalesce_overlapping (bool): Drop a sync request for a workspace that is
            already syncing.
    """

    sync_only_when_no_draft: bool = False
    sync_debounce_interval: int = 30 * 60_000
    draft_check_fail_open: bool = True
    coalesce_overlapping: bool = True


@dataclass
class AIConfig:
    """Commit message generation settings.

    Attributes:
        generate_backup_title (bool): Ask a language model for commit messages.
        timeout (int): Milliseconds to wait for the model before giving up.
        provider (str): Name of the default provider (empty disables generation).
        model (str): Name of the default model (empty disables generation).
        base_url (str): OpenAI-compatible endpoint of the provider.
        api_key_env (str): Environment variable holding the provider's API key.
    """

    generate_backup_title: bool = False
    timeout: int = AI_COMMIT_TIMEOUT_MS
    provider: str = ""
    model: str = ""
    base_url: str = "https://api.openai.com/v1"
    api_key_env: str = "OPENAI_API_KEY"


@dataclass
class LimitsConfig:
    """Resource limitation settings.

    Attributes:
        max_log_size (int): Max bytes for log files before rotation.
    """

    max_log_size: int = 5 * 1024 * 1024


@dataclass
class NetworkConfig:
    """Connectivity probe settings.

    Attributes:
        probe_host (str): Host contacted to decide whether the machine is online.
        probe_timeout (int): Milliseconds before a probe counts as failed.
    """

    probe_host: str = "github.com"
    probe_timeout: int = 3000


@dataclass
class Config:
    """Global configuration aggregator.

    Attributes:
        sync (SyncConfig): Synchronization preferences.
        ai (AIConfig): Commit message generation settings.
        limits (LimitsConfig): Resource limits.
        network (NetworkConfig): Connectivity probe settings.
        auth (dict[str, dict[str, str]]): Raw credential tables keyed by
            storage service name.
    """

    sync: SyncConfig = field(default_factory=SyncConfig)
    ai: AIConfig = field(default_factory=AIConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    auth: dict[str, dict[str, str]] = field(default_factory=dict)

    # Cache for the base global configuration
    _global_cache: "Config | None" = None

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Loads configuration from defaults and the global config file.

        Args:
            path (Path | None): An explicit config file, bypassing the cache.

        Returns:
            Config: The fully merged configuration object.
        """
        if path is not None:
            instance = cls()
            if path.exists():
                instance._merge_from_file(path)
            return instance

        if cls._global_cache is None:
            instance = cls()
            if CONFIG_FILE.exists():
                instance._merge_from_file(CONFIG_FILE)
            cls._global_cache = instance

        return replace(cls._global_cache)

    def _merge_from_file(self, path: Path) -> None:
        """Parses a TOML file and merges it into the current instance.

        Args:
            path (Path): Path to the TOML file.
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            if not data:
                return

            if "sync" in data:
                self.sync = self._update_dataclass("sync", self.sync, data["sync"])
            if "ai" in data:
                self.ai = self._update_dataclass("ai", self.ai, data["ai"])
            if "limits" in data:
                self.limits = self._update_dataclass(
                    "limits", self.limits, data["limits"]
                )
            if "network" in data:
                self.network = self._update_dataclass(
                    "network", self.network, data["network"]
                )
            if "auth" in data:
                self.auth = {
                    service: dict(table)
                    for service, table in data["auth"].items()
                    if isinstance(table, dict)
                }

        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {path}: {e}")
        except Exception as e:
            logger.warning(f"Failed to load config from {path}: {e}")

    @staticmethod
    def _update_dataclass(section_name: str, instance: Any, updates: dict) -> Any:
        """Updates a dataclass, warning on invalid keys and parsing human-readable formats."""
        valid_keys = instance.__dataclass_fields__.keys()
        filtered_updates = {}

        # 1. Catch and warn about typos / unknown keys
        invalid_keys = set(updates.keys()) - set(valid_keys)
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section_name}]: {', '.join(sorted(invalid_keys))}. Ignoring."
            )

        # 2. Process valid keys
        for k, v in updates.items():
            if k not in valid_keys:
                continue

            try:
                if k == "max_log_size":
                    filtered_updates[k] = parse_size(v)
                elif k in ["sync_debounce_interval", "timeout", "probe_timeout"]:
                    duration = parse_time(v)
                    if duration <= 0:
                        raise ValueError(f"'{v}' must be a positive duration")
                    filtered_updates[k] = duration
                else:
                    filtered_updates[k] = v
            except ValueError as e:
                logger.warning(
                    f"Config error in [{section_name}].{k}: {e}. Falling back to default."
                )

        return replace(instance, **filtered_updates)
