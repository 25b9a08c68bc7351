"""
Runtime context passed to the row-store engine.

OperationContext provides the engine with everything it needs from the
outside world: who is calling, what time it is, and how to mint IDs.
Swapping the callables is how tests pin identity and time.
"""

import getpass
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from functools import partial

from sheetstore.ids import DEFAULT_ID_LENGTH, default_prefix, generate_id
from sheetstore.schema import StoreConfig

USER_ENV_VAR = "SHEETSTORE_USER"


def system_clock() -> datetime:
    """Current UTC time."""
    return datetime.now(UTC)


def current_user() -> str:
    """Principal of the calling process ($SHEETSTORE_USER or the login name)."""
    user = os.environ.get(USER_ENV_VAR)
    if user:
        return user
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


@dataclass
class OperationContext:
    """
    Identity, clock and ID settings for engine operations.

    Attributes:
        identity: Returns the principal stamped into CreatedBy/ModifiedBy
        clock: Returns the timestamp stamped into DateCreated/DateModified
        id_length: Length of the random part of generated IDs
        id_prefixes: Per-sheet prefix overrides
    """

    identity: Callable[[], str] = current_user
    clock: Callable[[], datetime] = system_clock
    id_length: int = DEFAULT_ID_LENGTH
    id_prefixes: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: StoreConfig) -> "OperationContext":
        """Build a context honoring the configured identity and ID settings."""
        identity: Callable[[], str] = current_user
        if config.identity:
            identity = partial(str, config.identity)
        return cls(
            identity=identity,
            id_length=config.id_length,
            id_prefixes=dict(config.id_prefixes),
        )

    def prefix_for(self, sheet_name: str) -> str:
        """ID prefix used for rows of the given sheet."""
        return self.id_prefixes.get(sheet_name) or default_prefix(sheet_name)

    def new_id(self, sheet_name: str) -> str:
        """Generate a fresh ID for a row of the given sheet."""
        return generate_id(self.prefix_for(sheet_name), self.id_length)
