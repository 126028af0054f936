from dataclasses import dataclass, field
from typing import Dict, List, Set

from repograph.git_objects.models import CommitObject, Signature

GRAPH_SCHEMA_VERSION = 1


@dataclass(frozen=True)
class CommitInfo:
    oid: str
    tree_oid: str
    parents: List[str]
    author: Signature
    committer: Signature
    message: str

    @property
    def timestamp(self) -> int:
        return self.author.timestamp

    @property
    def summary(self) -> str:
        return self.message.splitlines()[0] if self.message else ""

    @classmethod
    def from_object(cls, commit: CommitObject) -> "CommitInfo":
        return cls(
            oid=commit.oid,
            tree_oid=commit.tree_oid,
            parents=list(commit.parent_oids),
            author=commit.author_signature,
            committer=commit.committer_signature,
            message=commit.message,
        )


@dataclass
class CollectedCommit:
    commit: CommitInfo
    branches: Set[str] = field(default_factory=set)


@dataclass
class CollectedHistory:
    commits: Dict[str, CollectedCommit] = field(default_factory=dict)
    branch_tips: Dict[str, str] = field(default_factory=dict)
    failed: Dict[str, str] = field(default_factory=dict)


@dataclass
class GraphCommit:
    commit: CommitInfo
    # parents restricted to the fetched set, in the commit's own order
    parents: List[str] = field(default_factory=list)
    children: List[str] = field(default_factory=list)
    branches: List[str] = field(default_factory=list)
    primary_branch: str = ""

    @property
    def oid(self) -> str:
        return self.commit.oid


@dataclass
class BranchInfo:
    name: str
    tip: str
    color: str


@dataclass
class CommitGraph:
    commits: List[GraphCommit]
    branch_tips: Dict[str, str]
    branches: List[BranchInfo] = field(default_factory=list)
    failed_branches: Dict[str, str] = field(default_factory=dict)
    version: int = GRAPH_SCHEMA_VERSION
