"""Shared test fixtures for the annosync test suite.

Design:
- tmp_vault: isolated vault directory with ANNOSYNC_VAULT_ROOT pointing at it
- store/index: LocalFileStore and FrontmatterIndex over tmp_vault
- settings: deterministic settings (UTC, fixed markers)
- notices: captures user notices instead of logging them
"""

import os
from pathlib import Path
from typing import Generator

import pytest
from click.testing import CliRunner

from annosync.config import SyncSettings
from annosync.models import Highlight, Metadata, Notebook, Review
from annosync.store import FrontmatterIndex, LocalFileStore


# ─────────────────────────────────────────────────────────────────────────────
# Core Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def runner() -> CliRunner:
    """CLI runner with isolated environment."""
    return CliRunner()


@pytest.fixture
def tmp_vault(tmp_path: Path) -> Generator[Path, None, None]:
    """Create an isolated vault and point ANNOSYNC_VAULT_ROOT at it.

    Usage:
        def test_something(tmp_vault):
            (tmp_vault / "note.md").write_text("# Note")
    """
    vault = tmp_path / "vault"
    vault.mkdir()
    (vault / ".obsidian").mkdir()

    original = os.environ.get("ANNOSYNC_VAULT_ROOT")
    os.environ["ANNOSYNC_VAULT_ROOT"] = str(vault)

    yield vault

    if original is None:
        os.environ.pop("ANNOSYNC_VAULT_ROOT", None)
    else:
        os.environ["ANNOSYNC_VAULT_ROOT"] = original


@pytest.fixture
def store(tmp_vault: Path) -> LocalFileStore:
    return LocalFileStore(tmp_vault)


@pytest.fixture
def index(store: LocalFileStore) -> FrontmatterIndex:
    return FrontmatterIndex(store)


@pytest.fixture
def settings() -> SyncSettings:
    return SyncSettings(
        timezone="UTC",
        insert_after="## Log",
        insert_before="## End",
        daily_notes_location="Journal",
        note_location="Reading",
    )


@pytest.fixture
def notices() -> list[str]:
    return []


@pytest.fixture
def notify(notices: list[str]):
    return notices.append


# ─────────────────────────────────────────────────────────────────────────────
# Builders
# ─────────────────────────────────────────────────────────────────────────────


def make_metadata(**overrides) -> Metadata:
    fields = {
        "title": "Dune",
        "author": "Frank Herbert",
        "book_id": "101",
        "note_count": 2,
        "review_count": 1,
    }
    fields.update(overrides)
    return Metadata(**fields)


def make_notebook(**overrides) -> Notebook:
    """Notebook with two highlights on 2023-11-14 UTC and one review on the 15th."""
    return Notebook(
        metadata=make_metadata(**overrides),
        highlights=[
            Highlight(block_id="h1", chapter="Book One", text="Fear is the mind-killer.", created=1700000000),
            Highlight(
                block_id="h2",
                chapter="Book One",
                text="The spice must flow.",
                created=1700000100,
                note="Economics",
            ),
        ],
        reviews=[Review(block_id="r1", content="A classic.", created=1700090000)],
    )


def write_note(vault: Path, rel_path: str, content: str) -> Path:
    path = vault / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def managed_note(book_id: str, note_count: int = 2, review_count: int = 1, extra: str = "") -> str:
    return f"""---
doc_type: weread-highlights-reviews
bookId: '{book_id}'
reviewCount: {review_count}
noteCount: {note_count}
{extra}---

# Old body
"""


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo CLI logging setup so caplog sees annosync records in every test."""
    import logging

    from annosync import _logging

    yield

    logger = logging.getLogger("annosync")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    _logging._quiet_mode = False
