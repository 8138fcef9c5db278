"""Notebook file resolution.

A notebook is bound to an existing file through the ``bookId`` stored in the
file's front matter, never through its path, so renaming or moving a file in
the vault does not produce a duplicate on the next sync.
"""

import logging
from typing import Any

from .config import DOC_TYPE, SyncSettings
from .models import AnnotationFile, BindingState, Notebook
from .naming import get_file_name, get_sub_folder_path
from .paths import join_path
from .store import FileStore, MetadataIndex

log = logging.getLogger(__name__)


def _is_managed(front_matter: dict[str, Any] | None) -> bool:
    return bool(front_matter) and front_matter.get("doc_type") == DOC_TYPE


def _count(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _annotation_file(path: str, front_matter: dict[str, Any], state: BindingState) -> AnnotationFile:
    return AnnotationFile(
        file=path,
        book_id=str(front_matter.get("bookId", "")),
        review_count=_count(front_matter.get("reviewCount")),
        note_count=_count(front_matter.get("noteCount")),
        state=state,
    )


def get_notebook_files(store: FileStore, index: MetadataIndex) -> list[AnnotationFile]:
    """Scan the vault for files managed by annosync.

    Every Markdown file whose cached front matter carries the reserved
    ``doc_type`` is returned as a MATCHED binding. Order is not significant.
    """
    files = []
    for path in store.markdown_files():
        front_matter = index.get_cached_front_matter(path)
        if not _is_managed(front_matter):
            continue
        files.append(_annotation_file(path, front_matter, BindingState.MATCHED))
    log.debug("Found %d managed notebook files", len(files))
    return files


def get_annotation_file(path: str, index: MetadataIndex) -> AnnotationFile | None:
    """Probe a single file; None unless it is managed and has a bookId."""
    front_matter = index.get_cached_front_matter(path)
    if not _is_managed(front_matter) or front_matter.get("bookId") is None:
        log.debug("%s is not a managed notebook file", path)
        return None
    return _annotation_file(path, front_matter, BindingState.DISCOVERED)


def match_notebook(notebook: Notebook, files: list[AnnotationFile]) -> AnnotationFile | None:
    """Bind a notebook to the managed file with the same bookId.

    When the stored counters equal the notebook's remote counts there is
    nothing new; the binding is marked DISCOVERED so the save step skips it.

    Returns:
        The binding, also assigned to ``notebook.file``; None if no file matches.
    """
    metadata = notebook.metadata
    local_file = next((f for f in files if f.book_id == metadata.book_id), None)
    if local_file is None:
        notebook.file = None
        return None

    unchanged = (
        local_file.note_count == metadata.note_count
        and local_file.review_count == metadata.review_count
    )
    state = BindingState.DISCOVERED if unchanged else BindingState.MATCHED
    notebook.file = local_file.model_copy(update={"state": state})
    return notebook.file


async def get_new_notebook_file_path(
    notebook: Notebook,
    *,
    store: FileStore,
    settings: SyncSettings,
) -> str:
    """Path for a notebook that has no file yet, creating its folder if needed."""
    folder_path = join_path(
        settings.note_location,
        get_sub_folder_path(notebook.metadata, settings.sub_folder_type),
    )
    if folder_path and not await store.exists(folder_path):
        log.info("Folder %s not found. Will be created", folder_path)
        await store.create_folder(folder_path)

    file_name = get_file_name(notebook.metadata, settings.file_name_type)
    return join_path(folder_path, f"{file_name}.md")
