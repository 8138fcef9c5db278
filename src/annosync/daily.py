"""Daily note merging.

Reference entries are written as transclusion links into a region of the
day's note delimited by two marker lines:

    ## Reading log
    <!-- start of weread -->
    - 09:12:45 ![[Dune#^3f2a1c]]
    <!-- end of weread -->

Everything outside the region is left byte-for-byte as it was.
"""

import logging
import re
from datetime import date, datetime
from enum import Enum

import pendulum
from jinja2 import BaseLoader, Environment

from .config import SyncSettings
from .errors import ConfigurationError, Notifier, RegionNotFoundError, log_notifier
from .models import Notebook, ReferenceEntry
from .naming import get_file_name
from .paths import detect_newline, get_lines_in_string, join_path
from .store import FileStore, get_file_by_path

log = logging.getLogger(__name__)

_tag_env = Environment(loader=BaseLoader(), autoescape=False)


class DailyNoteResult(str, Enum):
    UPDATED = "updated"
    CREATED = "created"
    MISSING = "missing"  # No note file at the path and none was created
    EMPTY = "empty"  # Nothing new to write


def _marker_pattern(marker: str | re.Pattern[str]) -> re.Pattern[str]:
    if isinstance(marker, re.Pattern):
        return marker
    return re.compile(rf"^\s*{re.escape(marker.strip())}\s*$")


def _marker_text(marker: str | re.Pattern[str]) -> str:
    return marker.pattern if isinstance(marker, re.Pattern) else marker


def find_region(
    lines: list[str],
    start_marker: str | re.Pattern[str],
    end_marker: str | re.Pattern[str],
) -> tuple[int, int]:
    """Indexes of the start marker line and the first end marker line after it.

    Raises:
        RegionNotFoundError: If no line matches the start marker, or no line
            after it matches the end marker.
    """
    start_pattern = _marker_pattern(start_marker)
    end_pattern = _marker_pattern(end_marker)

    start_index = next((i for i, line in enumerate(lines) if start_pattern.search(line)), None)
    if start_index is None:
        raise RegionNotFoundError(_marker_text(start_marker), "start")

    end_index = next(
        (i for i in range(start_index + 1, len(lines)) if end_pattern.search(lines[i])),
        None,
    )
    if end_index is None:
        raise RegionNotFoundError(_marker_text(end_marker), "end")
    return start_index, end_index


def insert_between_markers(
    lines: list[str],
    start_marker: str | re.Pattern[str],
    end_marker: str | re.Pattern[str],
    payload: list[str],
) -> list[str]:
    """Insert payload lines into the region between two marker lines.

    Marker strings are literal text and match a whole line, ignoring
    surrounding whitespace. A compiled pattern is used as given.

    The payload goes after the region's last non-blank line, or directly
    after the start marker when the region is blank, so repeated merges
    append in order. Lines up to and including the start marker, and the
    end marker with everything after it, are returned unchanged.

    Raises:
        RegionNotFoundError: See find_region.
    """
    start_index, end_index = find_region(lines, start_marker, end_marker)

    insert_at = end_index
    while insert_at > start_index + 1 and not lines[insert_at - 1].strip():
        insert_at -= 1

    return lines[:insert_at] + list(payload) + lines[insert_at:]


def reference_link(file_name: str, block_id: str) -> str:
    return f"![[{file_name}#^{block_id}]]"


def format_reference_line(entry: ReferenceEntry, file_name: str, custom_tag: str, tz) -> str:
    """One daily-note line: ``- HH:mm:ss [tag ]![[file#^block]]``."""
    created = pendulum.from_timestamp(entry.created, tz=tz).format("HH:mm:ss")
    tag = f"{custom_tag} " if custom_tag else ""
    return f"- {created} {tag}{reference_link(file_name, entry.block_id)}"


def build_append_content(entries: list[ReferenceEntry], settings: SyncSettings) -> str:
    """Render entries as daily-note lines, grouped by notebook in first-seen order.

    The custom tag is a Jinja2 template rendered once per notebook with
    ``metaData`` (camelCase fields) and ``metadata`` in scope. Template errors
    propagate to the caller.
    """
    template = _tag_env.from_string(settings.custom_tag) if settings.custom_tag else None
    tz = settings.tz()

    groups: dict[str, list[ReferenceEntry]] = {}
    for entry in entries:
        groups.setdefault(entry.metadata.book_id, []).append(entry)

    blocks = []
    for group in groups.values():
        metadata = group[0].metadata
        custom_tag = ""
        if template is not None:
            custom_tag = template.render(
                metaData=metadata.model_dump(by_alias=True),
                metadata=metadata,
            ).strip()
        file_name = get_file_name(metadata, settings.file_name_type)
        blocks.append(
            "\n".join(format_reference_line(entry, file_name, custom_tag, tz) for entry in group)
        )
    return "\n".join(blocks)


def _check_date_format(pattern: str) -> None:
    if not pattern.strip():
        raise ValueError("empty date format")
    depth = 0
    for char in pattern:
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
        if depth not in (0, 1):
            raise ValueError("unbalanced [ ] escape")
    if depth:
        raise ValueError("unbalanced [ ] escape")


def get_daily_note_path(
    day: date | datetime,
    settings: SyncSettings,
    notify: Notifier = log_notifier,
) -> str:
    """Vault path of the daily note for a day.

    Raises:
        ConfigurationError: If ``daily_notes_format`` is not a usable pattern.
    """
    pattern = settings.daily_notes_format
    if isinstance(day, datetime):
        moment = pendulum.instance(day)
    else:
        moment = pendulum.datetime(day.year, day.month, day.day)

    try:
        _check_date_format(pattern)
        file_name = moment.format(pattern)
    except (ValueError, TypeError, KeyError) as e:
        notify(f"Daily Notes date format is invalid: {pattern}")
        raise ConfigurationError(f"Invalid daily notes format {pattern!r}: {e}") from e

    return join_path(settings.daily_notes_location, f"{file_name}.md")


def collect_reference_entries(
    notebooks: list[Notebook],
    settings: SyncSettings,
    since: int | None = None,
    notify: Notifier = log_notifier,
) -> dict[str, list[ReferenceEntry]]:
    """Group every highlight and review into the daily note of its day.

    Entries created at or before ``since`` (epoch seconds) are left out.
    Within a day, entries are ordered by creation time.
    """
    tz = settings.tz()
    entries: list[ReferenceEntry] = []
    for notebook in notebooks:
        annotations = [(h.created, h.block_id) for h in notebook.highlights]
        annotations += [(r.created, r.block_id) for r in notebook.reviews]
        for created, block_id in annotations:
            if since is not None and created <= since:
                continue
            entries.append(
                ReferenceEntry(metadata=notebook.metadata, created=created, block_id=block_id)
            )

    by_day: dict[str, list[ReferenceEntry]] = {}
    for entry in sorted(entries, key=lambda e: e.created):
        day = pendulum.from_timestamp(entry.created, tz=tz)
        by_day.setdefault(get_daily_note_path(day, settings, notify), []).append(entry)
    return by_day


async def save_daily_notes(
    path: str,
    entries: list[ReferenceEntry],
    *,
    store: FileStore,
    settings: SyncSettings,
    notify: Notifier = log_notifier,
) -> DailyNoteResult:
    """Merge entries into the daily note at path, creating it if allowed.

    Entries whose link is already in the note's region are left out, so
    merging the same entries twice writes them once.

    Raises:
        RegionNotFoundError: If the existing note lacks a marker line. The
            note is left untouched.
    """
    if not entries:
        log.debug("No entries for %s", path)
        return DailyNoteResult.EMPTY

    if await store.exists(path):
        daily_file = await get_file_by_path(store, path)
        if daily_file is None:
            notify(f"Daily note path is not a file: {path}")
            return DailyNoteResult.MISSING

        content = await store.read(daily_file)
        lines = get_lines_in_string(content)
        try:
            start_index, end_index = find_region(
                lines, settings.insert_after, settings.insert_before
            )
        except RegionNotFoundError as e:
            boundary = "Start" if e.boundary == "start" else "End"
            notify(
                f"{boundary} marker not found in daily note {path}: {e.marker}. "
                "Check the Daily Notes settings."
            )
            raise

        region = "\n".join(lines[start_index + 1 : end_index])
        fresh = [
            entry
            for entry in entries
            if reference_link(get_file_name(entry.metadata, settings.file_name_type), entry.block_id)
            not in region
        ]
        if not fresh:
            log.debug("All %d entries already linked in %s", len(entries), path)
            return DailyNoteResult.EMPTY

        # Lines keep their own "\r"; new lines follow the note's line break
        cr = "\r" if detect_newline(content) == "\r\n" else ""
        payload = [line + cr for line in build_append_content(fresh, settings).split("\n")]
        lines = insert_between_markers(
            lines, settings.insert_after, settings.insert_before, payload
        )
        await store.modify(daily_file, "\n".join(lines))
        log.info("Appended %d entries to %s", len(fresh), path)
        return DailyNoteResult.UPDATED

    if not settings.auto_create_daily_note:
        notify(f"Daily note not found, create it first: {path}")
        return DailyNoteResult.MISSING

    content = build_append_content(entries, settings)
    template_path = settings.daily_note_template_path
    if template_path:
        template_file = await get_file_by_path(store, template_path)
        if template_file:
            template_content = await store.read(template_file)
            content = template_content + "\n\n" + content

    await store.create(path, content)
    notify(f"Created daily note: {path}")
    return DailyNoteResult.CREATED
