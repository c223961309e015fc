"""Exceptions raised by the workspace lifecycle and git layers."""


class WikiSyncError(Exception):
    """Base class carrying a user-facing category and description."""

    category = "WikiSyncError"

    def __init__(self, description: str):
        super().__init__(description)
        self.description = description


class GitCommandError(WikiSyncError):
    """A git subprocess exited with a non-zero status."""

    category = "GitCommandError"


class NoGitUserInfoError(WikiSyncError):
    """A remote-backed workspace was created without a git URL or credentials."""

    category = "NoGitUserInfoError"

    def __init__(self, git_url: str | None, has_user_info: bool):
        super().__init__(
            f"no git user info for synced wiki (git url: {git_url or 'missing'}, "
            f"credentials: {'present' if has_user_info else 'missing'})"
        )


class InitWikiGitError(WikiSyncError):
    """Creating a workspace failed and was rolled back cleanly."""

    category = "InitWikiGitError"


class InitWikiGitRevertError(WikiSyncError):
    """Creating a workspace failed and rolling it back failed too.

    The registry entry is gone but files may be left on disk.
    """

    category = "InitWikiGitRevertError"
