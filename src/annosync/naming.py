"""File name and folder strategies for notebook files."""

import re

from .config import OFFICIAL_ACCOUNT_AUTHOR, UNCATEGORIZED_FOLDER, FileNameType, SubFolderType
from .models import Metadata

# Characters that are illegal in file names on common platforms or that
# break wiki links ([[name#heading^block|alias]]).
_ILLEGAL_CHARS = re.compile(r'[\\/:*?"<>|#^\[\]]')
_WHITESPACE = re.compile(r"\s+")


def sanitize_title(title: str) -> str:
    """Turn a title into a single valid path segment.

    "Foo: Bar" -> "Foo Bar"
    """
    cleaned = _ILLEGAL_CHARS.sub(" ", title)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip().strip(".")
    return cleaned or "untitled"


def get_file_name(metadata: Metadata, file_name_type: FileNameType | str) -> str:
    """File name (without extension) for a notebook."""
    base_file_name = sanitize_title(metadata.title)

    if file_name_type == FileNameType.BOOK_ID:
        return metadata.book_id

    if file_name_type == FileNameType.BOOK_NAME_AUTHOR:
        if metadata.duplicate:
            return f"{base_file_name}-{metadata.author}-{metadata.book_id}"
        return f"{base_file_name}-{metadata.author}"

    if file_name_type == FileNameType.BOOK_NAME_BOOKID:
        return f"{base_file_name}-{metadata.book_id}"

    if metadata.duplicate:
        return f"{base_file_name}-{metadata.book_id}"
    return base_file_name


def get_sub_folder_path(metadata: Metadata, sub_folder_type: SubFolderType | str) -> str:
    """Folder below the note location, or "" to write at its top level."""
    if sub_folder_type == SubFolderType.TITLE:
        return metadata.title

    if sub_folder_type == SubFolderType.CATEGORY:
        if metadata.category:
            return metadata.category.split("-")[0]
        if metadata.author == OFFICIAL_ACCOUNT_AUTHOR:
            return OFFICIAL_ACCOUNT_AUTHOR
        return UNCATEGORIZED_FOLDER

    return ""
