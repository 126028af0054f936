import heapq
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import BranchInfo, CollectedHistory, CommitGraph, CommitInfo, GraphCommit

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY_BRANCHES = ("main", "master", "dev", "develop")

# d3 category10
DEFAULT_PALETTE = (
    "#1f77b4",
    "#ff7f0e",
    "#2ca02c",
    "#d62728",
    "#9467bd",
    "#8c564b",
    "#e377c2",
    "#7f7f7f",
    "#bcbd22",
    "#17becf",
)


@dataclass(frozen=True)
class GraphConfig:
    priority_branches: Tuple[str, ...] = DEFAULT_PRIORITY_BRANCHES
    palette: Tuple[str, ...] = DEFAULT_PALETTE

    def pick(self, candidates: Iterable[str]) -> Optional[str]:
        """First priority branch among ``candidates``, else the lexicographically smallest."""
        candidates = set(candidates)
        if not candidates:
            return None
        for name in self.priority_branches:
            if name in candidates:
                return name
        return min(candidates)


def primary_branch(oid: str, branches: Iterable[str], tips_by_oid: Mapping[str, List[str]],
                   config: GraphConfig) -> str:
    """Branch used to place ``oid`` in a column: tip owner, sole branch, priority branch, then by name."""
    tip_owners = tips_by_oid.get(oid)
    if tip_owners:
        return config.pick(tip_owners)

    branches = set(branches)
    if len(branches) == 1:
        return next(iter(branches))
    return config.pick(branches) or ""


def topological_sort(commits: Sequence[CommitInfo]) -> List[CommitInfo]:
    """Orders commits children first, newest first among those ready.

    Parents outside ``commits`` are ignored. Commits that can never become
    ready (cycles, inconsistent parents) are appended newest first, so every
    input commit appears exactly once.
    """
    by_oid: Dict[str, CommitInfo] = {}
    for commit in commits:
        by_oid.setdefault(commit.oid, commit)

    parents = {
        oid: [p for p in dict.fromkeys(commit.parents) if p in by_oid and p != oid]
        for oid, commit in by_oid.items()
    }
    remaining = dict.fromkeys(by_oid, 0)
    for oid, commit_parents in parents.items():
        for parent in commit_parents:
            remaining[parent] += 1

    def key(oid: str) -> Tuple[int, str]:
        return -by_oid[oid].timestamp, oid

    ready = [key(oid) for oid, count in remaining.items() if count == 0]
    heapq.heapify(ready)

    result: List[CommitInfo] = []
    emitted = set()
    while ready:
        _, oid = heapq.heappop(ready)
        result.append(by_oid[oid])
        emitted.add(oid)
        for parent in parents[oid]:
            remaining[parent] -= 1
            if remaining[parent] == 0:
                heapq.heappush(ready, key(parent))

    if len(result) < len(by_oid):
        stranded = sorted((oid for oid in by_oid if oid not in emitted), key=key)
        logger.warning(f"{len(stranded)} commit(s) could not be ordered topologically; appending them")
        result.extend(by_oid[oid] for oid in stranded)

    return result


class GraphBuilder:
    def __init__(self, config: Optional[GraphConfig] = None):
        self.config = config or GraphConfig()

    def build(self, history: CollectedHistory) -> CommitGraph:
        collected = history.commits

        tips_by_oid: Dict[str, List[str]] = {}
        for branch, tip in history.branch_tips.items():
            tips_by_oid.setdefault(tip, []).append(branch)

        children: Dict[str, List[str]] = {oid: [] for oid in collected}
        for oid, entry in collected.items():
            for parent in dict.fromkeys(entry.commit.parents):
                if parent in children and parent != oid:
                    children[parent].append(oid)

        ordered = topological_sort([entry.commit for entry in collected.values()])
        position = {commit.oid: index for index, commit in enumerate(ordered)}

        nodes = []
        for commit in ordered:
            entry = collected[commit.oid]
            nodes.append(GraphCommit(
                commit=commit,
                parents=[p for p in commit.parents if p in collected],
                children=sorted(children[commit.oid], key=position.__getitem__),
                branches=sorted(entry.branches),
                primary_branch=primary_branch(commit.oid, entry.branches, tips_by_oid, self.config),
            ))

        palette = self.config.palette
        branches = [
            BranchInfo(name=name, tip=tip, color=palette[index % len(palette)] if palette else "")
            for index, (name, tip) in enumerate(history.branch_tips.items())
        ]

        logger.debug(f"Built graph of {len(nodes)} commit(s) across {len(branches)} branch(es)")
        return CommitGraph(
            commits=nodes,
            branch_tips=dict(history.branch_tips),
            branches=branches,
            failed_branches=dict(history.failed),
        )
