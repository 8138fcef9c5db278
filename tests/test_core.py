"""Tests for save orchestration and full sync runs in annosync.core.

Design:
- Real LocalFileStore over a temp vault; no mocking of file writes
- Each test checks what ends up on disk
"""

import frontmatter
import pytest

from annosync import core
from annosync.models import AnnotationFile, BindingState
from conftest import make_notebook, managed_note, write_note


def _load(path):
    return frontmatter.loads(path.read_text(encoding="utf-8"))


# ─────────────────────────────────────────────────────────────────────────────
# mark_duplicate_titles
# ─────────────────────────────────────────────────────────────────────────────


def test_mark_duplicate_titles():
    a = make_notebook(title="Poems", book_id="1")
    b = make_notebook(title="Poems", book_id="2")
    c = make_notebook(title="Dune", book_id="3", duplicate=True)

    core.mark_duplicate_titles([a, b, c])

    assert a.metadata.duplicate and b.metadata.duplicate
    assert not c.metadata.duplicate


# ─────────────────────────────────────────────────────────────────────────────
# save_notebook
# ─────────────────────────────────────────────────────────────────────────────


class TestSaveNotebook:
    @pytest.mark.asyncio
    async def test_creates_new_file(self, tmp_vault, store, index, settings):
        notebook = make_notebook(category="Fiction-Scifi", cover="https://img/dune.jpg")

        path = await core.save_notebook(notebook, store=store, index=index, settings=settings)

        assert path == "Reading/Dune.md"
        post = _load(tmp_vault / path)
        assert post["doc_type"] == "weread-highlights-reviews"
        assert post["bookId"] == "101"
        assert post["noteCount"] == 2
        assert post["reviewCount"] == 1
        assert post["category"] == "Fiction-Scifi"
        assert "Fear is the mind-killer. ^h1" in post.content
        assert "A classic. ^r1" in post.content

    @pytest.mark.asyncio
    async def test_create_fails_if_path_taken(self, tmp_vault, store, index, settings):
        write_note(tmp_vault, "Reading/Dune.md", "someone else's note")

        with pytest.raises(FileExistsError):
            await core.save_notebook(make_notebook(), store=store, index=index, settings=settings)

        assert (tmp_vault / "Reading/Dune.md").read_text() == "someone else's note"

    @pytest.mark.asyncio
    async def test_updates_bound_file_and_keeps_user_fields(self, tmp_vault, store, index, settings):
        write_note(
            tmp_vault,
            "Books/my-dune.md",
            managed_note("101", note_count=1, extra="tags:\n  - scifi\nrating: 5\n"),
        )
        notebook = make_notebook()
        notebook.file = AnnotationFile(
            file="Books/my-dune.md", book_id="101", note_count=1, review_count=1, state=BindingState.MATCHED
        )

        path = await core.save_notebook(notebook, store=store, index=index, settings=settings)

        assert path == "Books/my-dune.md"
        post = _load(tmp_vault / path)
        assert post["noteCount"] == 2
        assert post["tags"] == ["scifi"]
        assert post["rating"] == 5
        assert "# Old body" not in post.content
        assert not (tmp_vault / "Reading").exists()

    @pytest.mark.asyncio
    async def test_discovered_binding_is_skipped(self, tmp_vault, store, index, settings):
        original = managed_note("101")
        write_note(tmp_vault, "Dune.md", original)
        notebook = make_notebook()
        notebook.file = AnnotationFile(file="Dune.md", book_id="101", state=BindingState.DISCOVERED)

        path = await core.save_notebook(notebook, store=store, index=index, settings=settings)

        assert path is None
        assert (tmp_vault / "Dune.md").read_text() == original


# ─────────────────────────────────────────────────────────────────────────────
# sync
# ─────────────────────────────────────────────────────────────────────────────


class TestSync:
    @pytest.mark.asyncio
    async def test_repeated_sync_is_idempotent(self, tmp_vault, store, index, settings):
        first = await core.sync([make_notebook()], store=store, index=index, settings=settings)
        second = await core.sync([make_notebook()], store=store, index=index, settings=settings)

        assert first.created == ["Reading/Dune.md"]
        assert second.created == []
        assert second.skipped == ["101"]
        assert sorted(p.name for p in (tmp_vault / "Reading").iterdir()) == ["Dune.md"]

    @pytest.mark.asyncio
    async def test_new_annotations_update_moved_file(self, tmp_vault, store, index, settings):
        await core.sync([make_notebook()], store=store, index=index, settings=settings)
        (tmp_vault / "Archive").mkdir()
        (tmp_vault / "Reading/Dune.md").rename(tmp_vault / "Archive/Dune (old).md")

        summary = await core.sync(
            [make_notebook(note_count=3)], store=store, index=index, settings=settings
        )

        assert summary.updated == ["Archive/Dune (old).md"]
        assert summary.created == []
        assert _load(tmp_vault / "Archive/Dune (old).md")["noteCount"] == 3
        assert not (tmp_vault / "Reading/Dune.md").exists()

    @pytest.mark.asyncio
    async def test_duplicate_titles_get_distinct_files(self, tmp_vault, store, index, settings):
        notebooks = [
            make_notebook(title="Poems", book_id="1"),
            make_notebook(title="Poems", book_id="2"),
        ]

        summary = await core.sync(notebooks, store=store, index=index, settings=settings)

        assert summary.created == ["Reading/Poems-1.md", "Reading/Poems-2.md"]

    @pytest.mark.asyncio
    async def test_daily_notes_disabled_by_default(self, tmp_vault, store, index, settings):
        settings.auto_create_daily_note = True

        summary = await core.sync([make_notebook()], store=store, index=index, settings=settings)

        assert summary.daily_notes == []
        assert not (tmp_vault / "Journal").exists()

    @pytest.mark.asyncio
    async def test_links_new_annotations_from_daily_notes(
        self, tmp_vault, store, index, settings, notices, notify
    ):
        settings.daily_notes_toggle = True
        write_note(tmp_vault, "Journal/2023-11-14.md", "# Tue\n## Log\n\n## End\n")
        write_note(tmp_vault, "Journal/2023-11-15.md", "# Wed\nno markers here\n")

        summary = await core.sync(
            [make_notebook()], store=store, index=index, settings=settings, notify=notify
        )

        assert summary.daily_notes == ["Journal/2023-11-14.md"]
        assert len(summary.failures) == 1
        assert summary.failures[0].startswith("Journal/2023-11-15.md")
        assert (tmp_vault / "Journal/2023-11-14.md").read_text() == (
            "# Tue\n## Log\n"
            "- 22:13:20 ![[Dune#^h1]]\n"
            "- 22:15:00 ![[Dune#^h2]]\n"
            "\n## End\n"
        )
        assert (tmp_vault / "Journal/2023-11-15.md").read_text() == "# Wed\nno markers here\n"
        assert any("Start marker" in n for n in notices)

    @pytest.mark.asyncio
    async def test_updated_notebook_does_not_relink_old_annotations(
        self, tmp_vault, store, index, settings
    ):
        settings.daily_notes_toggle = True
        write_note(tmp_vault, "Journal/2023-11-14.md", "## Log\n## End\n")
        expected = "## Log\n- 22:13:20 ![[Dune#^h1]]\n- 22:15:00 ![[Dune#^h2]]\n## End\n"

        first = await core.sync([make_notebook()], store=store, index=index, settings=settings)
        second = await core.sync(
            [make_notebook(note_count=3)], store=store, index=index, settings=settings
        )

        assert first.daily_notes == ["Journal/2023-11-14.md"]
        assert second.updated == ["Reading/Dune.md"]
        assert second.daily_notes == []
        assert (tmp_vault / "Journal/2023-11-14.md").read_text() == expected

    @pytest.mark.asyncio
    async def test_unchanged_notebooks_add_nothing_to_daily_notes(self, tmp_vault, store, index, settings):
        await core.sync([make_notebook()], store=store, index=index, settings=settings)
        settings.daily_notes_toggle = True
        write_note(tmp_vault, "Journal/2023-11-14.md", "## Log\n## End\n")

        summary = await core.sync([make_notebook()], store=store, index=index, settings=settings)

        assert summary.daily_notes == []
        assert (tmp_vault / "Journal/2023-11-14.md").read_text() == "## Log\n## End\n"
