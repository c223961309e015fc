import logging
import os
from pathlib import Path

from .commit_message import generate_ai_commit_message
from .config import Config
from .constants import (
    APP_NAME,
    DEFAULT_BACKUP_MESSAGE,
    DEFAULT_BRANCH,
    INIT_COMMIT_MESSAGE,
    REMOTE_NAME,
)
from .errors import GitCommandError
from .git_wrapper import GitRepo
from .interfaces import GitService, TextGenerator
from .models import GitUserInfo, SyncOptions, Workspace
from .system import get_remote_host, is_online

logger = logging.getLogger(APP_NAME)


def get_git_url_with_credential(url: str, user_info: GitUserInfo | None) -> str:
    """Embeds `username:token` into an HTTPS remote URL.

    SSH URLs and anonymous access are returned unchanged.
    """
    if user_info is None or not user_info.token or not url.startswith("https://"):
        return url
    rest = url.removeprefix("https://").rsplit("@", 1)[-1]
    return f"https://{user_info.username}:{user_info.token}@{rest}"


def identity_env(user_info: GitUserInfo | None) -> dict[str, str]:
    """Builds an environment that commits as the workspace's git user.

    Network prompts are disabled so a missing credential fails fast instead of
    hanging the daemon.
    """
    env = os.environ.copy()
    env["GIT_TERMINAL_PROMPT"] = "0"
    env["GIT_SSH_COMMAND"] = "ssh -o BatchMode=yes"
    name = user_info.username if user_info else APP_NAME
    email = user_info.email if user_info else f"{APP_NAME}@localhost"
    env["GIT_AUTHOR_NAME"] = env["GIT_COMMITTER_NAME"] = name
    env["GIT_AUTHOR_EMAIL"] = env["GIT_COMMITTER_EMAIL"] = email
    return env


class CliGitService(GitService):
    """GitService backed by the git command-line client.

    Attributes:
        config (Config): Loaded configuration (network probe and AI settings).
        generator (TextGenerator | None): Language model for commit messages.
    """

    def __init__(self, config: Config, generator: TextGenerator | None = None):
        self.config = config
        self.generator = generator

    async def _is_online(self, remote_url: str | None = None) -> bool:
        host = (remote_url and get_remote_host(remote_url)) or self.config.network.probe_host
        return await is_online(host, self.config.network.probe_timeout)

    async def has_git(self, path: Path) -> bool:
        return (path / ".git").exists()

    async def init_wiki_git(
        self,
        path: Path,
        is_synced: bool,
        is_main_wiki: bool,
        remote_url: str | None = None,
        user_info: GitUserInfo | None = None,
    ) -> None:
        branch = user_info.branch if user_info and user_info.branch else DEFAULT_BRANCH
        env = identity_env(user_info)

        logger.info(f"INIT {path.name}: initializing git repository")
        repo = await GitRepo.init(path, branch)
        await repo.add_all()
        await repo.commit(INIT_COMMIT_MESSAGE, env=env, allow_empty=True)

        if not is_synced or not remote_url:
            return

        await repo.set_remote(REMOTE_NAME, remote_url)
        if not await self._is_online(remote_url):
            logger.info(f"OFFLINE {path.name}: remote configured, first sync deferred.")
            return

        credential_url = get_git_url_with_credential(remote_url, user_info)
        if is_main_wiki:
            await repo.push(credential_url, f"HEAD:refs/heads/{branch}", env=env)
            logger.info(f"INIT {path.name}: pushed to {REMOTE_NAME}/{branch}")
        else:
            # Sub-wikis only fetch on creation; their first sync merges the content.
            await repo.fetch(
                credential_url,
                f"+refs/heads/{branch}:refs/remotes/{REMOTE_NAME}/{branch}",
                env=env,
            )
            logger.info(f"INIT {path.name}: fetched {REMOTE_NAME}/{branch}")

    async def _commit_local_changes(
        self, repo: GitRepo, message: str | None, user_info: GitUserInfo | None
    ) -> bool:
        """Stages and commits everything; returns False when the tree was clean."""
        if not await repo.status_porcelain():
            return False

        if not message:
            message = await generate_ai_commit_message(
                repo.path, self.config.ai, self.generator
            )
            if message:
                logger.info(f"AI MESSAGE {repo.path.name}: {message}")
            else:
                message = DEFAULT_BACKUP_MESSAGE

        await repo.add_all()
        await repo.commit(message, env=identity_env(user_info))
        logger.info(f"COMMIT {repo.path.name}: {message}")
        return True

    async def commit_and_sync(self, workspace: Workspace, options: SyncOptions) -> bool:
        if not workspace.is_wiki:
            return False
        if not options.commit_only and not await self._is_online(options.remote_url):
            logger.info(f"OFFLINE {workspace.name}: sync skipped.")
            return False

        repo = GitRepo(options.dir)
        await self._commit_local_changes(repo, options.commit_message, options.user_info)
        if options.commit_only or not options.remote_url:
            return False

        user_info = options.user_info
        branch = user_info.branch if user_info and user_info.branch else DEFAULT_BRANCH
        env = identity_env(user_info)
        credential_url = get_git_url_with_credential(options.remote_url, user_info)
        upstream = f"refs/remotes/{REMOTE_NAME}/{branch}"

        await repo.set_remote(REMOTE_NAME, options.remote_url)
        try:
            await repo.fetch(credential_url, f"+refs/heads/{branch}:{upstream}", env=env)
        except GitCommandError as e:
            # An empty remote has no branch to fetch yet.
            if await repo.rev_parse(upstream) is not None:
                raise
            logger.info(f"SYNC {workspace.name}: remote branch missing ({e}), pushing.")
            await repo.push(credential_url, f"HEAD:refs/heads/{branch}", env=env)
            return False

        incoming = await repo.count_commits(f"HEAD..{upstream}")
        outgoing = await repo.count_commits(f"{upstream}..HEAD")
        if incoming:
            try:
                await repo.rebase(upstream, env=env)
            except GitCommandError:
                await repo.abort_rebase()
                raise
        if outgoing:
            await repo.push(credential_url, f"HEAD:refs/heads/{branch}", env=env)

        logger.info(
            f"SYNC {workspace.name}: {incoming} commits pulled, {outgoing} pushed."
        )
        return incoming > 0

    async def force_pull(self, workspace: Workspace, options: SyncOptions) -> bool:
        """Resets the working tree to the remote branch.

        Local commits are discarded; uncommitted files are stashed and re-applied
        on top of the remote state. A re-apply conflict leaves the stash in place.
        """
        if not workspace.is_wiki or not options.remote_url:
            return False
        if not await self._is_online(options.remote_url):
            logger.info(f"OFFLINE {workspace.name}: force pull skipped.")
            return False

        repo = GitRepo(options.dir)
        user_info = options.user_info
        branch = user_info.branch if user_info and user_info.branch else DEFAULT_BRANCH
        upstream = f"refs/remotes/{REMOTE_NAME}/{branch}"
        env = identity_env(user_info)
        await repo.fetch(
            get_git_url_with_credential(options.remote_url, user_info),
            f"+refs/heads/{branch}:{upstream}",
            env=env,
        )

        before = await repo.rev_parse("HEAD")
        stashed = await repo.stash(env=env)
        await repo.reset_hard(upstream)
        if stashed:
            try:
                await repo.stash_pop()
            except GitCommandError as e:
                logger.warning(
                    f"FORCE PULL {workspace.name}: local edits kept in stash ({e})"
                )
        after = await repo.rev_parse("HEAD")
        logger.info(f"FORCE PULL {workspace.name}: reset to {upstream}")
        return before != after
