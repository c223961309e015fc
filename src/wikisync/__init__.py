"""wikisync: Background git synchronization for wiki workspaces.

This package provides the sync engine (draft gate, orchestrator, interval
scheduler, workspace transactions and the shutdown flush), the adapters that
drive git, the wiki folders and a language model, and the command-line
interface and daemon built on top of them.
"""

from . import (
    cli,
    commit_message,
    config,
    constants,
    daemon,
    draft,
    errors,
    git_service,
    git_wrapper,
    models,
    scheduler,
    shutdown,
    sync,
    system,
    transaction,
)

__all__ = [
    "cli",
    "commit_message",
    "config",
    "constants",
    "daemon",
    "draft",
    "errors",
    "git_service",
    "git_wrapper",
    "models",
    "scheduler",
    "shutdown",
    "sync",
    "system",
    "transaction",
]
