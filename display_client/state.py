from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Union

STATIC = "static"
DYNAMIC = "dynamic"


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Loading:
    source: str
    message: str


@dataclass(frozen=True)
class Loaded:
    """A completed fetch. entry is None when the store had no active row."""
    entry: Optional[Dict[str, str]]
    source: str
    updated_at: str

    @property
    def is_static_mode(self) -> bool:
        return self.source == STATIC

    @property
    def is_empty(self) -> bool:
        return self.entry is None


@dataclass(frozen=True)
class Errored:
    message: str


DisplayState = Union[Idle, Loading, Loaded, Errored]


def human_timestamp(now: Optional[datetime] = None) -> str:
    """Local wall-clock time, formatted for display."""
    now = now or datetime.now()
    return now.strftime("%m/%d/%Y, %I:%M:%S %p")


def loaded(entry: Optional[Dict[str, str]], source: str, now: Optional[datetime] = None) -> Loaded:
    """Build a Loaded state, stamping the view with its completion time."""
    updated_at = human_timestamp(now)
    if entry is not None:
        entry = {**entry, "timestamp": updated_at}
    return Loaded(entry=entry, source=source, updated_at=updated_at)
