import asyncio
import logging
import re
from pathlib import Path

from .constants import APP_NAME
from .errors import GitCommandError

logger = logging.getLogger(APP_NAME)


class GitRepo:
    """An asyncio wrapper around the Git command-line interface for one working tree.

    Every command runs through `asyncio.create_subprocess_exec` so a slow network
    operation on one wiki never blocks the event loop that drives the others.

    Attributes:
        path (Path): The file system path to the repository root.
    """

    def __init__(self, path: Path):
        """Initializes the GitRepo instance.

        Args:
            path (Path): The path to the repository root directory.

        Raises:
            ValueError: If the specified path does not contain a .git directory.
        """
        self.path = path
        if not (self.path / ".git").exists():
            raise ValueError(f"Not a git repository: {self.path}")

    @classmethod
    async def init(cls, path: Path, branch: str) -> "GitRepo":
        """Runs `git init` in `path` and returns a wrapper for the new repository.

        Args:
            path (Path): The folder to turn into a repository.
            branch (str): Name of the initial branch.

        Returns:
            GitRepo: The wrapper for the initialized repository.
        """
        path.mkdir(parents=True, exist_ok=True)
        await _exec(["init", "-b", branch], cwd=path)
        return cls(path)

    async def _run(
        self, args: list[str], capture: bool = True, env: dict | None = None
    ) -> str:
        """Executes a Git command within the repository context.

        Args:
            args (list[str]): A list of arguments to pass to the git command.
            capture (bool, optional): Whether to return stdout. Defaults to True.
            env (dict | None, optional): Environment variables for the subprocess.

        Returns:
            str:    The stripped stdout of the command if capture is True,
                    otherwise an empty string.

        Raises:
            GitCommandError: If the git command returns a non-zero exit code.
        """
        output = await _exec(args, cwd=self.path, env=env)
        return output if capture else ""

    async def current_branch(self) -> str:
        return await self._run(["branch", "--show-current"])

    async def status_porcelain(self) -> list[str]:
        """Returns the porcelain (machine-readable) status of the repository."""
        output = await self._run(["status", "--porcelain"])
        return output.splitlines() if output else []

    async def add_all(self) -> None:
        """
        Stages all changes (modified, deleted, and untracked files)
        in the working directory.
        """
        await self._run(["add", "."], capture=False)

    async def commit(
        self, message: str, env: dict | None = None, allow_empty: bool = False
    ) -> None:
        """Creates a new commit with the provided message, bypassing hooks.

        Args:
            message (str): The commit message.
            env (dict | None, optional): Environment carrying the author identity.
            allow_empty (bool, optional): Commit even if nothing is staged.
        """
        cmd = ["commit", "-m", message, "--no-verify"]
        if allow_empty:
            cmd.append("--allow-empty")
        await self._run(cmd, capture=False, env=env)

    async def rev_parse(self, rev: str) -> str | None:
        """Resolves a revision to a full SHA-1 hash, or None if it does not exist."""
        try:
            return await self._run(["rev-parse", "--verify", "--quiet", rev])
        except GitCommandError as e:
            logger.debug(f"rev-parse failed for '{rev}': {e}")
            return None

    async def set_remote(self, name: str, url: str) -> None:
        """Points remote `name` at `url`, creating the remote if needed."""
        if await self.get_remote_url(name) is None:
            await self._run(["remote", "add", name, url], capture=False)
        else:
            await self._run(["remote", "set-url", name, url], capture=False)

    async def get_remote_url(self, name: str) -> str | None:
        try:
            return await self._run(["remote", "get-url", name])
        except GitCommandError:
            return None

    async def fetch(self, remote: str, refspec: str, env: dict | None = None) -> None:
        await self._run(["fetch", remote, refspec], capture=False, env=env)

    async def push(self, remote: str, refspec: str, env: dict | None = None) -> None:
        await self._run(["push", remote, refspec], capture=False, env=env)

    async def rebase(self, upstream: str, env: dict | None = None) -> None:
        await self._run(["rebase", upstream], capture=False, env=env)

    async def abort_rebase(self) -> None:
        try:
            await self._run(["rebase", "--abort"], capture=False)
        except GitCommandError as e:
            logger.warning(f"Could not abort rebase in {self.path.name}: {e}")

    async def reset_hard(self, target: str) -> None:
        await self._run(["reset", "--hard", target], capture=False)

    async def stash(self, env: dict | None = None) -> bool:
        """Stashes uncommitted work including untracked files.

        Returns:
            bool: True if anything was stashed.
        """
        output = await self._run(["stash", "push", "--include-untracked"], env=env)
        return "No local changes" not in output

    async def stash_pop(self) -> None:
        await self._run(["stash", "pop"], capture=False)

    async def count_commits(self, rev_range: str) -> int:
        """Counts the commits in a range such as `HEAD..origin/main`."""
        output = await self._run(["rev-list", "--count", rev_range])
        return int(output or 0)

    async def diff(self, cached: bool = False) -> str:
        """Returns the unstaged diff, or the staged one when `cached` is set."""
        cmd = ["diff", "--no-color"]
        if cached:
            cmd.append("--cached")
        return await self._run(cmd)

    async def get_untracked_files(self) -> list[str]:
        """Lists files that are not tracked by git and are not ignored."""
        output = await self._run(["ls-files", "--others", "--exclude-standard"])
        return output.splitlines() if output else []


async def _exec(args: list[str], cwd: Path, env: dict | None = None) -> str:
    process = await asyncio.create_subprocess_exec(
        "git",
        *args,
        cwd=cwd,
        env=env,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await process.communicate()
    except asyncio.CancelledError:
        # Reap git before propagating the cancellation.
        if process.returncode is None:
            process.kill()
        await process.wait()
        raise
    if process.returncode != 0:
        message = stderr.decode(errors="replace").strip() or f"exit {process.returncode}"
        raise GitCommandError(f"Git error ({args[0]}): {_redact(message)}")
    return stdout.decode(errors="replace").strip()


def _redact(text: str) -> str:
    """Strips credentials embedded in remote URLs from git output."""
    return re.sub(r"(https?://)[^/\s@]+@", r"\1", text)
