import asyncio
import logging

from .constants import APP_NAME, DRAFT_FILTER, UNSAVED_EDIT_FILTER
from .interfaces import WikiService

logger = logging.getLogger(APP_NAME)


async def check_can_sync_due_to_no_draft(
    wiki: WikiService, workspace_id: str, fail_open: bool = True
) -> bool:
    """Decides whether a sync may proceed given the wiki's pending edits.

    The server-side draft query and the browser-side unsaved-editor query run
    concurrently; any title returned by either blocks the sync.

    Args:
        wiki (WikiService): The content engine to query.
        workspace_id (str): The wiki to inspect (a main workspace's id for subs).
        fail_open (bool): The answer to give when a query fails.

    Returns:
        bool: True if syncing may proceed, False if drafts block it.
    """
    results = await asyncio.gather(
        wiki.run_filter_in_server(workspace_id, DRAFT_FILTER),
        wiki.run_filter_in_browser(workspace_id, UNSAVED_EDIT_FILTER),
        return_exceptions=True,
    )
    errors = [r for r in results if isinstance(r, BaseException)]
    if errors:
        logger.warning(
            f"DRAFT CHECK {workspace_id}: query failed ({errors[0]}), "
            f"{'allowing' if fail_open else 'blocking'} sync."
        )
        return fail_open

    drafts, unsaved = results

    pending = [*(drafts or []), *(unsaved or [])]
    if pending:
        logger.info(f"DRAFT CHECK {workspace_id}: {len(pending)} pending edits.")
        return False
    return True
