"""Pydantic models for notebooks, annotations and their file bindings."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Metadata(BaseModel):
    """Identity of a source notebook (one book or article)."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    title: str
    author: str = ""
    book_id: str = Field(alias="bookId")
    category: str | None = None
    duplicate: bool = False  # Title collides with another notebook in the batch
    cover: str | None = None
    url: str | None = None
    publisher: str | None = None
    # Remote annotation counts, compared with the stored ones to detect changes
    note_count: int = Field(default=0, alias="noteCount")
    review_count: int = Field(default=0, alias="reviewCount")


class Highlight(BaseModel):
    """A highlighted passage, optionally with the reader's note."""

    model_config = ConfigDict(populate_by_name=True)

    block_id: str = Field(alias="blockId")
    chapter: str = ""
    text: str
    created: int  # Epoch seconds
    note: str | None = None


class Review(BaseModel):
    """A free-form review, optionally anchored to a quoted passage."""

    model_config = ConfigDict(populate_by_name=True)

    block_id: str = Field(alias="blockId")
    content: str
    created: int  # Epoch seconds
    abstract: str | None = None


class BindingState(str, Enum):
    """Where an AnnotationFile binding came from.

    MATCHED: produced by the index build and matched this run; the file
        assignment is final and the file gets rewritten.
    DISCOVERED: produced by a single-file probe, or matched with unchanged
        counts; the binding may be stale and the file is left alone.
    """

    MATCHED = "matched"
    DISCOVERED = "discovered"


class AnnotationFile(BaseModel):
    """Binding between a notebook id and a managed file in the vault."""

    file: str | None  # Vault-relative path
    book_id: str
    review_count: int | None = None
    note_count: int | None = None
    state: BindingState

    @property
    def new(self) -> bool:
        """True when the binding is final for this run (legacy name)."""
        return self.state is BindingState.MATCHED


class SaveAction(str, Enum):
    """What save_notebook does with a notebook."""

    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"


class Notebook(BaseModel):
    """One notebook's worth of annotations, the unit that gets saved."""

    metadata: Metadata
    highlights: list[Highlight] = Field(default_factory=list)
    reviews: list[Review] = Field(default_factory=list)
    file: AnnotationFile | None = None

    @property
    def save_action(self) -> SaveAction:
        if self.file is None:
            return SaveAction.CREATE
        if self.file.state is BindingState.MATCHED:
            return SaveAction.UPDATE
        return SaveAction.SKIP


class ReferenceEntry(BaseModel):
    """One annotation occurrence to link from a daily note."""

    model_config = ConfigDict(frozen=True)

    metadata: Metadata
    created: int  # Epoch seconds
    block_id: str


class SyncSummary(BaseModel):
    """Outcome of a sync run."""

    created: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)  # Book ids with nothing new
    daily_notes: list[str] = Field(default_factory=list)
    failures: list[str] = Field(default_factory=list)
