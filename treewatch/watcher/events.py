# treewatch/watcher/events.py

"""
Event types flowing from the watch facility to observers
"""
from enum import Enum
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Iterable, Union


class EventKind(Enum):
    CREATED = "created"
    DELETED = "deleted"
    MODIFIED = "modified"
    OVERFLOW = "overflow"  # Facility dropped events, no path attached

    @classmethod
    def parse(cls, value: Union[str, "EventKind"]) -> "EventKind":
        """Parse an event kind from its name or value (case-insensitive)"""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for kind in cls:
            if text in (kind.value, kind.name.lower()):
                return kind
        raise ValueError(f"Unknown event kind: {value!r}")


# Kinds an observer can be notified about
ALL_EVENT_KINDS: FrozenSet[EventKind] = frozenset(
    {EventKind.CREATED, EventKind.DELETED, EventKind.MODIFIED}
)


def parse_event_kinds(values: Iterable[Union[str, EventKind]]) -> FrozenSet[EventKind]:
    """
    Parse a collection of event kind names

    Args:
        values: Names such as "created" or EventKind members

    Returns:
        Frozen set of observable event kinds
    """
    kinds = frozenset(EventKind.parse(value) for value in values)
    if EventKind.OVERFLOW in kinds:
        raise ValueError("overflow is not an observable event kind")
    return kinds


@dataclass(frozen=True)
class RawEvent:
    """Event as reported for one watched directory, name relative to it"""
    kind: EventKind
    name: str = ""

    def __str__(self):
        return f"{self.kind.value}: {self.name}"


@dataclass(frozen=True)
class ResolvedEvent:
    kind: EventKind
    path: Path

    def __str__(self):
        return f"{self.kind.value}: {self.path}"
