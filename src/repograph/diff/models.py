from dataclasses import dataclass, field
from enum import Enum
from typing import List


class ChangeKind(str, Enum):
    ADDED = "added"
    DELETED = "deleted"
    MODIFIED = "modified"

    def inverse(self) -> "ChangeKind":
        if self is ChangeKind.ADDED:
            return ChangeKind.DELETED
        if self is ChangeKind.DELETED:
            return ChangeKind.ADDED
        return self


@dataclass(frozen=True)
class ChangeRecord:
    path: str
    kind: ChangeKind


class DiffStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"


@dataclass
class TreeDiffResult:
    """Changed files between two trees.

    ``unreadable`` holds the path prefixes of trees that could not be read;
    those subtrees contribute no records and mark the result as degraded.
    """
    changes: List[ChangeRecord] = field(default_factory=list)
    unreadable: List[str] = field(default_factory=list)

    @property
    def status(self) -> DiffStatus:
        return DiffStatus.DEGRADED if self.unreadable else DiffStatus.OK


class FileDiffStatus(str, Enum):
    OK = "ok"
    TOO_LARGE = "too_large"
    UNREADABLE = "unreadable"


@dataclass
class FileDiff:
    path: str
    kind: ChangeKind
    status: FileDiffStatus
    text: str
