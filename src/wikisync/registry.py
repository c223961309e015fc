import json
import logging
import os
import uuid
from pathlib import Path

from .constants import APP_NAME, WORKSPACES_FILE
from .interfaces import WorkspaceRegistry
from .models import NewWorkspaceConfig, Workspace

logger = logging.getLogger(APP_NAME)


class JsonWorkspaceRegistry(WorkspaceRegistry):
    """Workspace store backed by a JSON file.

    The whole file is read on construction and rewritten on every change.

    Attributes:
        path (Path): The JSON file.
    """

    def __init__(self, path: Path = WORKSPACES_FILE):
        self.path = path
        self._workspaces: dict[str, Workspace] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"ERROR: Could not read workspace registry {self.path}. {e}")
            return
        for item in data.get("workspaces", []):
            try:
                workspace = Workspace.from_dict(item)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed workspace entry: {e}")
                continue
            self._workspaces[workspace.id] = workspace

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = self.path.with_suffix(".tmp")
        payload = {"workspaces": [w.to_dict() for w in self.get_workspaces_as_list()]}
        try:
            with open(tmp_file, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_file, self.path)
        except OSError:
            if tmp_file.exists():
                tmp_file.unlink()
            raise

    def get(self, workspace_id: str) -> Workspace | None:
        return self._workspaces.get(workspace_id)

    def get_workspaces_as_list(self) -> list[Workspace]:
        return sorted(self._workspaces.values(), key=lambda w: w.order)

    def create(self, config: NewWorkspaceConfig) -> Workspace:
        order = max((w.order for w in self._workspaces.values()), default=-1) + 1
        workspace = Workspace.from_config(str(uuid.uuid4()), config, order=order)
        self._workspaces[workspace.id] = workspace
        self._save()
        logger.info(f"REGISTERED {workspace.name} ({workspace.id})")
        return workspace

    def set(self, workspace: Workspace) -> None:
        self._workspaces[workspace.id] = workspace
        self._save()

    def remove(self, workspace_id: str) -> None:
        if self._workspaces.pop(workspace_id, None) is not None:
            self._save()
            logger.info(f"UNREGISTERED {workspace_id}")

    def get_main_workspace(self, workspace: Workspace) -> Workspace | None:
        """Finds the main workspace a sub-workspace belongs to.

        `main_wiki_id` wins; older entries are matched by `main_wiki_to_link`.
        """
        if not workspace.is_sub_wiki:
            return None
        if workspace.main_wiki_id:
            return self.get(workspace.main_wiki_id)
        for candidate in self.get_workspaces_as_list():
            if (
                not candidate.is_sub_wiki
                and workspace.main_wiki_to_link is not None
                and candidate.wiki_folder_location == workspace.main_wiki_to_link
            ):
                return candidate
        return None

    def get_sub_workspaces_as_list(self, workspace_id: str) -> list[Workspace]:
        main = self.get(workspace_id)
        if main is None or main.is_sub_wiki:
            return []
        return [
            w
            for w in self.get_workspaces_as_list()
            if w.is_sub_wiki and self.get_main_workspace(w) is main
        ]

    def set_active_workspace(self, workspace_id: str) -> None:
        if workspace_id not in self._workspaces:
            raise KeyError(f"Unknown workspace {workspace_id}")
        for workspace in self._workspaces.values():
            workspace.active = workspace.id == workspace_id
        self._save()

    def get_active_workspace(self) -> Workspace | None:
        return next((w for w in self.get_workspaces_as_list() if w.active), None)

    def get_first_workspace(self) -> Workspace | None:
        workspaces = self.get_workspaces_as_list()
        return workspaces[0] if workspaces else None
