"""Front matter building for notebook files.

The header written here is what the resolver reads back on the next run:
``doc_type`` marks the file as managed, ``bookId`` binds it to a notebook and
the two counters let an unchanged notebook be skipped.
"""

from typing import Any

import yaml

from .config import DOC_TYPE
from .models import Notebook

# Keys written by build_frontmatter; any other key in an existing header is
# a user addition and is carried over untouched.
OWNED_KEYS = (
    "doc_type",
    "bookId",
    "title",
    "author",
    "cover",
    "category",
    "url",
    "reviewCount",
    "noteCount",
)


def notebook_frontmatter(notebook: Notebook) -> dict[str, Any]:
    """Fresh header fields for a notebook, optional ones only when set."""
    metadata = notebook.metadata
    fields: dict[str, Any] = {
        "doc_type": DOC_TYPE,
        "bookId": metadata.book_id,
        "title": metadata.title,
        "author": metadata.author,
    }
    if metadata.cover:
        fields["cover"] = metadata.cover
    if metadata.category:
        fields["category"] = metadata.category
    if metadata.url:
        fields["url"] = metadata.url
    fields["reviewCount"] = metadata.review_count
    fields["noteCount"] = metadata.note_count
    return fields


def merge_frontmatter(fresh: dict[str, Any], existing: dict[str, Any] | None) -> dict[str, Any]:
    """Overlay fresh fields on an existing header, keeping its key order."""
    if not existing:
        return dict(fresh)
    merged = dict(existing)
    merged.update(fresh)
    return merged


def build_frontmatter(
    body: str,
    notebook: Notebook,
    existing: dict[str, Any] | None = None,
) -> str:
    """Prepend a YAML front matter block to a rendered notebook body.

    Args:
        body: Rendered Markdown for the notebook.
        notebook: Notebook the body was rendered from.
        existing: Front matter of the file being updated, if any.

    Returns:
        Complete document text including --- delimiters.
    """
    fields = merge_frontmatter(notebook_frontmatter(notebook), existing)
    header = yaml.safe_dump(
        fields,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
    return f"---\n{header}---\n\n{body.lstrip()}"
