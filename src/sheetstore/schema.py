"""
Schema definitions for sheetstore.

This module defines the Pydantic models used throughout sheetstore:
- Record: one physical row materialized as named fields
- Operation: the operation names understood by the coordinator
- StoreConfig: configuration loaded from YAML

Design Decisions:
    - Reserved bookkeeping columns are typed members addressed by their
      column names through aliases (ID, CreatedBy, ...)
    - User fields live in the model's extra map and must be scalars
    - Reserved members are optional so malformed rows can still be held
    - Configuration models are immutable (frozen=True)
"""

from datetime import UTC, date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# Reserved Columns
# =============================================================================

ID = "ID"
CREATED_BY = "CreatedBy"
MODIFIED_BY = "ModifiedBy"
DATE_CREATED = "DateCreated"
DATE_MODIFIED = "DateModified"
VALID = "Valid"

# Fixed order at header positions 0-5
RESERVED_COLUMNS: tuple[str, ...] = (
    ID,
    CREATED_BY,
    MODIFIED_BY,
    DATE_CREATED,
    DATE_MODIFIED,
    VALID,
)

SCALAR_TYPES = (str, int, float, bool, date, datetime)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive datetime; convert an aware one to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


# =============================================================================
# Enums
# =============================================================================


class Operation(str, Enum):
    """Operations the access coordinator can dispatch."""

    CREATE_SHEET = "CREATE_SHEET"
    CLEAN_SHEET = "CLEAN_SHEET"
    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    UNDO_DELETE = "UNDO_DELETE"


class BackendKind(str, Enum):
    """Tabular backends shipped with sheetstore."""

    MEMORY = "memory"
    SQLITE = "sqlite"


# =============================================================================
# Record
# =============================================================================


class Record(BaseModel):
    """
    One physical row as a mapping from column name to scalar value.

    The six reserved columns are typed members; every other column is a
    user field kept in the extra map. Reserved members are only populated
    from their column names, so a user column called "id" or "valid" stays
    a user field. A value of None means the field is absent from the row,
    exactly like a blank cell.

    Attributes:
        id: Logical entity identifier (column "ID")
        created_by: Principal that created the entity (column "CreatedBy")
        modified_by: Principal that wrote this version (column "ModifiedBy")
        date_created: When the entity was created (column "DateCreated")
        date_modified: When this version was written (column "DateModified")
        valid: False once the version is soft-deleted (column "Valid")
    """

    model_config = ConfigDict(
        extra="allow",
        coerce_numbers_to_str=True,
    )

    id: str | None = Field(default=None, alias=ID)
    created_by: str | None = Field(default=None, alias=CREATED_BY)
    modified_by: str | None = Field(default=None, alias=MODIFIED_BY)
    date_created: datetime | None = Field(default=None, alias=DATE_CREATED)
    date_modified: datetime | None = Field(default=None, alias=DATE_MODIFIED)
    valid: bool | None = Field(default=None, alias=VALID)

    @field_validator("id", "created_by", "modified_by", mode="before")
    @classmethod
    def blank_is_absent(cls, v: Any) -> Any:
        """Treat empty strings in reserved text columns as absent."""
        if v == "":
            return None
        return v

    @field_validator("date_created", "date_modified", mode="after")
    @classmethod
    def normalize_timestamps(cls, v: datetime | None) -> datetime | None:
        """Store timestamps as UTC; naive values are taken to be UTC already."""
        if v is None:
            return None
        return as_utc(v)

    @model_validator(mode="after")
    def check_user_fields(self) -> "Record":
        """User fields must have non-empty names and scalar values."""
        for name, value in (self.model_extra or {}).items():
            if not isinstance(name, str) or not name.strip():
                msg = f"Field names must be non-empty strings, got {name!r}"
                raise ValueError(msg)
            if value is not None and not isinstance(value, SCALAR_TYPES):
                msg = f"Field {name} must be a scalar value, got {type(value).__name__}"
                raise ValueError(msg)
        return self

    def fields(self) -> dict[str, Any]:
        """Return present fields keyed by column name, reserved columns first."""
        return self.model_dump(by_alias=True, exclude_none=True)

    @property
    def user_fields(self) -> dict[str, Any]:
        """Non-reserved fields that are present."""
        return {k: v for k, v in (self.model_extra or {}).items() if v is not None}

    def get(self, name: str, default: Any = None) -> Any:
        """Look up a field by column name."""
        return self.fields().get(name, default)

    def __getitem__(self, name: str) -> Any:
        return self.fields()[name]

    def __contains__(self, name: object) -> bool:
        return name in self.fields()


# =============================================================================
# Configuration
# =============================================================================


class StoreConfig(BaseModel):
    """
    Store configuration.

    Attributes:
        backend: Which tabular backend to open
        database: SQLite file used by the sqlite backend
        lock_timeout_seconds: Bounded wait for the global store lock
        retention_hours: How long soft-deleted rows survive compaction
        id_length: Length of the random part of generated IDs
        id_prefixes: Per-sheet ID prefix overrides (default: first character)
        identity: Fixed principal to stamp instead of the OS user
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    backend: BackendKind = Field(
        default=BackendKind.SQLITE,
        description="Tabular backend to use",
    )
    database: Path = Field(
        default=Path("sheetstore.db"),
        description="SQLite database file for the sqlite backend",
    )
    lock_timeout_seconds: float = Field(
        default=30.0,
        description="Seconds to wait for the store lock before giving up",
        gt=0,
    )
    retention_hours: float = Field(
        default=24.0,
        description="Age after which soft-deleted rows are compacted away",
        ge=0,
    )
    id_length: int = Field(
        default=16,
        description="Length of the random suffix of generated IDs",
        ge=8,
        le=32,
    )
    id_prefixes: dict[str, str] = Field(
        default_factory=dict,
        description="Sheet name -> ID prefix overrides",
    )
    identity: str | None = Field(
        default=None,
        description="Fixed principal to record in CreatedBy/ModifiedBy",
    )

    @field_validator("id_prefixes")
    @classmethod
    def validate_prefixes(cls, v: dict[str, str]) -> dict[str, str]:
        """Prefixes must be non-empty and must not contain the separator."""
        for sheet, prefix in v.items():
            if not prefix or "-" in prefix:
                msg = f"Invalid ID prefix for sheet {sheet}: {prefix!r}"
                raise ValueError(msg)
        return v


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def load_config(path: Path | str) -> StoreConfig:
    """
    Load store configuration from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated StoreConfig object

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the YAML doesn't match the schema
    """
    path = Path(path)
    with path.open() as f:
        data = yaml.safe_load(f)

    return StoreConfig.model_validate(data or {})


def load_config_from_string(content: str) -> StoreConfig:
    """Load store configuration from a YAML string."""
    data = yaml.safe_load(content)
    return StoreConfig.model_validate(data or {})
