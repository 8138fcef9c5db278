"""Core sync logic for annosync.

Design principles:
- All functions touching the file store are async
- Settings arrive as an explicit snapshot; nothing here reads a global
- save_notebook is the only place rendering, front matter and file writes meet
"""

import logging
from collections import Counter

from .config import SyncSettings
from .daily import DailyNoteResult, collect_reference_entries, save_daily_notes
from .errors import Notifier, RegionNotFoundError, log_notifier
from .frontmatter import build_frontmatter
from .models import Notebook, SaveAction, SyncSummary
from .renderer import render
from .resolver import get_new_notebook_file_path, get_notebook_files, match_notebook
from .store import FileStore, MetadataIndex

log = logging.getLogger(__name__)


def mark_duplicate_titles(notebooks: list[Notebook]) -> None:
    """Flag notebooks whose title is shared with another one in the batch."""
    counts = Counter(notebook.metadata.title for notebook in notebooks)
    for notebook in notebooks:
        notebook.metadata.duplicate = counts[notebook.metadata.title] > 1


async def save_notebook(
    notebook: Notebook,
    *,
    store: FileStore,
    index: MetadataIndex,
    settings: SyncSettings,
) -> str | None:
    """Write a notebook to its bound file, or to a new file if it has none.

    The notebook's binding must already be resolved (see match_notebook).

    Returns:
        Path written, or None when the binding says there is nothing new.
    """
    action = notebook.save_action

    if action is SaveAction.UPDATE:
        existing_file = notebook.file.file
        log.info("Updating %s", existing_file)
        content = build_frontmatter(
            render(notebook),
            notebook,
            existing=index.get_cached_front_matter(existing_file),
        )
        await store.modify(existing_file, content)
        return existing_file

    if action is SaveAction.CREATE:
        new_file_path = await get_new_notebook_file_path(notebook, store=store, settings=settings)
        log.info("Creating %s", new_file_path)
        content = build_frontmatter(render(notebook), notebook)
        return await store.create(new_file_path, content)

    log.debug("Skipping %s: no new annotations", notebook.metadata.book_id)
    return None


async def sync(
    notebooks: list[Notebook],
    *,
    store: FileStore,
    index: MetadataIndex,
    settings: SyncSettings,
    notify: Notifier = log_notifier,
    since: int | None = None,
) -> SyncSummary:
    """Save every notebook and, if enabled, link new annotations from daily notes.

    Args:
        notebooks: Notebooks fetched from the reading source.
        store: Vault file store.
        index: Front matter index over the same vault.
        settings: Settings snapshot for this run.
        notify: Receives user-facing notices.
        since: Epoch seconds of the previous sync; older annotations are not
            added to daily notes again.

    Returns:
        SyncSummary listing created/updated files, skipped book ids, daily
        notes written and per-item failures. File store errors propagate.
    """
    summary = SyncSummary()
    files = get_notebook_files(store, index)
    mark_duplicate_titles(notebooks)

    changed: list[Notebook] = []
    for notebook in notebooks:
        match_notebook(notebook, files)
        action = notebook.save_action
        written = await save_notebook(notebook, store=store, index=index, settings=settings)
        if action is SaveAction.SKIP:
            summary.skipped.append(notebook.metadata.book_id)
            continue
        changed.append(notebook)
        if action is SaveAction.UPDATE:
            summary.updated.append(written)
        else:
            summary.created.append(written)

    if not settings.daily_notes_toggle:
        return summary

    by_day = collect_reference_entries(changed, settings, since=since, notify=notify)
    for path, entries in by_day.items():
        try:
            result = await save_daily_notes(
                path, entries, store=store, settings=settings, notify=notify
            )
        except RegionNotFoundError as e:
            # One broken daily note must not stop the others
            log.warning("Skipped daily note %s: %s", path, e)
            summary.failures.append(f"{path}: {e}")
            continue
        if result in (DailyNoteResult.UPDATED, DailyNoteResult.CREATED):
            summary.daily_notes.append(path)

    return summary
