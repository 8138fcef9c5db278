"""Configuration management for annosync.

Settings live in a YAML file at the vault root (``.annosync.yaml``). Keys may
be written in camelCase, as exported by the reading plugin's settings page,
or in snake_case:

    noteLocation: Reading/WeRead
    fileNameType: BOOK_NAME_AUTHOR
    subFolderType: category
    dailyNotesToggle: true
    dailyNotesLocation: Journal
    dailyNotesFormat: YYYY-MM-DD
    insertAfter: "<!-- start of weread -->"
    insertBefore: "<!-- end of weread -->"
    customTag: "#{{ metaData.category }}"

Operations never read settings from a global. Callers hold a SettingsStore
and pass ``store.snapshot()`` into each entry point.
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any

import pendulum
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError

log = logging.getLogger(__name__)

# Settings filename at the vault root
SETTINGS_FILENAME = ".annosync.yaml"

# Front matter value that marks a document as managed by annosync.
# Files carrying any other doc_type are never matched or overwritten.
DOC_TYPE = "weread-highlights-reviews"

# Folder used by the category strategy for notebooks with no category
UNCATEGORIZED_FOLDER = "未分类"

# Author handle used by the reading app for articles from official accounts;
# these get their own folder under the category strategy.
OFFICIAL_ACCOUNT_AUTHOR = "公众号"


class FileNameType(str, Enum):
    """How a notebook's file name is derived."""

    BOOK_ID = "BOOK_ID"
    BOOK_NAME_AUTHOR = "BOOK_NAME_AUTHOR"
    BOOK_NAME_BOOKID = "BOOK_NAME_BOOKID"
    BOOK_NAME = "BOOK_NAME"


class SubFolderType(str, Enum):
    """How the folder below ``note_location`` is derived."""

    TITLE = "title"
    CATEGORY = "category"
    NONE = "none"


class SyncSettings(BaseModel):
    """Recognized annosync options."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    auto_create_daily_note: bool = Field(default=False, alias="autoCreateDailyNote")
    daily_note_template_path: str | None = Field(default=None, alias="dailyNoteTemplatePath")
    daily_notes_toggle: bool = Field(default=False, alias="dailyNotesToggle")
    daily_notes_format: str = Field(default="YYYY-MM-DD", alias="dailyNotesFormat")
    daily_notes_location: str = Field(default="/", alias="dailyNotesLocation")
    custom_tag: str | None = Field(default=None, alias="customTag")
    insert_after: str = Field(default="<!-- start of weread -->", alias="insertAfter")
    insert_before: str = Field(default="<!-- end of weread -->", alias="insertBefore")
    note_location: str = Field(default="/", alias="noteLocation")
    file_name_type: FileNameType = Field(default=FileNameType.BOOK_NAME, alias="fileNameType")
    sub_folder_type: SubFolderType = Field(default=SubFolderType.NONE, alias="subFolderType")
    timezone: str | None = None  # IANA name; None means the local timezone

    @field_validator("file_name_type", mode="before")
    @classmethod
    def _default_file_name_type(cls, value: Any) -> Any:
        # Unknown modes fall back to the plain title
        if value is None or value not in FileNameType._value2member_map_:
            return FileNameType.BOOK_NAME
        return value

    @field_validator("sub_folder_type", mode="before")
    @classmethod
    def _default_sub_folder_type(cls, value: Any) -> Any:
        if value is None or value not in SubFolderType._value2member_map_:
            return SubFolderType.NONE
        return value

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            pendulum.timezone(value)
        except Exception as e:
            raise ValueError(f"unknown timezone {value!r}") from e
        return value

    def tz(self) -> Any:
        """Timezone used for entry times and daily-note dates."""
        if self.timezone:
            return pendulum.timezone(self.timezone)
        return pendulum.local_timezone()


class SettingsStore:
    """Live, reconfigurable settings holder.

    Operations must not keep a reference to the store across awaits; they
    take one snapshot at entry so a change made mid-run is only seen by the
    next operation.
    """

    def __init__(self, settings: SyncSettings | None = None) -> None:
        self._settings = settings or SyncSettings()

    def snapshot(self) -> SyncSettings:
        return self._settings.model_copy(deep=True)

    def update(self, **changes: Any) -> SyncSettings:
        """Apply changes (snake_case or camelCase keys) and revalidate."""
        aliases = {f.alias: name for name, f in SyncSettings.model_fields.items() if f.alias}
        data = self._settings.model_dump(mode="json")
        data.update({aliases.get(key, key): value for key, value in changes.items()})
        self._settings = _validate(data, source=None)
        return self.snapshot()

    def replace(self, settings: SyncSettings) -> None:
        self._settings = settings


def get_vault_root(explicit: str | Path | None = None) -> Path:
    """Get the vault root directory.

    Discovery order:
    1. Explicit path (CLI ``--vault``)
    2. ANNOSYNC_VAULT_ROOT environment variable

    Raises:
        ConfigurationError: If no vault root is configured or it is not a directory.
    """
    root = explicit or os.environ.get("ANNOSYNC_VAULT_ROOT")
    if not root:
        raise ConfigurationError(
            "No vault configured. Pass --vault or set ANNOSYNC_VAULT_ROOT "
            "to the directory holding your notes."
        )
    path = Path(root).expanduser()
    if not path.is_dir():
        raise ConfigurationError(f"Vault root is not a directory: {path}")
    return path


def load_settings(vault_root: Path) -> SyncSettings:
    """Load settings from ``<vault_root>/.annosync.yaml``.

    A missing file yields default settings.

    Raises:
        ConfigurationError: If the file is not valid YAML or has invalid values.
    """
    config_file = vault_root / SETTINGS_FILENAME
    if not config_file.exists():
        log.debug("No %s in %s, using defaults", SETTINGS_FILENAME, vault_root)
        return SyncSettings()

    try:
        data = yaml.safe_load(config_file.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"{config_file}: invalid YAML: {e}") from e

    # Handle empty file or all-comments file
    if data is None:
        return SyncSettings()
    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_file}: expected a mapping of options")

    return _validate(data, source=config_file)


def _validate(data: dict[str, Any], source: Path | None) -> SyncSettings:
    try:
        return SyncSettings.model_validate(data)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            errors.append(f"  - {loc}: {error['msg']}")
        prefix = f"{source}: " if source else ""
        raise ConfigurationError(prefix + "Invalid settings:\n" + "\n".join(errors)) from e
