import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set, Tuple

from repograph.git_objects.errors import RepoGraphError
from repograph.git_objects.repository import Repository
from .models import CollectedCommit, CollectedHistory, CommitInfo

logger = logging.getLogger(__name__)

DEFAULT_DEPTH = 50


@dataclass
class BranchWalk:
    branch: str
    tip: str = ""
    commits: List[CommitInfo] = field(default_factory=list)
    error: Optional[str] = None


class HistoryCollector:
    """Walks the history of several branches and merges it into one commit map."""

    def __init__(self, repo: Repository, workers: int = 1):
        self.repo = repo
        self.workers = workers

    def walk(self, tip_oid: str, depth: int = DEFAULT_DEPTH) -> List[CommitInfo]:
        """Depth-first walk from ``tip_oid``, first parent first, at most ``depth`` commits.

        Raises ObjectReadFailure if a commit on the way cannot be read.
        Parents listed in the shallow file are not followed.
        """
        visited: Set[str] = set()
        commits: List[CommitInfo] = []
        stack = [tip_oid]

        while stack and len(commits) < depth:
            oid = stack.pop()
            if oid in visited:
                continue
            visited.add(oid)

            commit = CommitInfo.from_object(self.repo.read_commit(oid))
            commits.append(commit)
            if oid in self.repo.shallow_oids:
                continue

            # reversed so the first-listed parent is popped first
            for parent in reversed(commit.parents):
                if parent not in visited:
                    stack.append(parent)

        return commits

    def walk_branch(self, branch: str, depth: int = DEFAULT_DEPTH) -> Tuple[str, List[CommitInfo]]:
        tip = self.repo.resolve(branch)
        commits = self.walk(tip, depth)
        logger.debug(f"Walked {len(commits)} commit(s) from {branch} ({tip[:7]})")
        return tip, commits

    def _safe_walk(self, branch: str, depth: int) -> BranchWalk:
        try:
            tip, commits = self.walk_branch(branch, depth)
        except RepoGraphError as e:
            logger.warning(f"Error fetching commits for branch {branch}: {e.message}")
            return BranchWalk(branch=branch, error=e.message)
        return BranchWalk(branch=branch, tip=tip, commits=commits)

    def collect(self, branch_names: Sequence[str], per_branch_depth: int = DEFAULT_DEPTH) -> CollectedHistory:
        branches = list(dict.fromkeys(branch_names))
        if self.workers > 1 and len(branches) > 1:
            with ThreadPoolExecutor(max_workers=min(self.workers, len(branches))) as executor:
                walks = list(executor.map(lambda b: self._safe_walk(b, per_branch_depth), branches))
        else:
            walks = [self._safe_walk(branch, per_branch_depth) for branch in branches]

        # merged on one thread, in the caller's branch order
        history = CollectedHistory()
        for walk in walks:
            if walk.error is not None:
                history.failed[walk.branch] = walk.error
                continue

            history.branch_tips[walk.branch] = walk.tip
            for commit in walk.commits:
                entry = history.commits.get(commit.oid)
                if entry is None:
                    entry = history.commits[commit.oid] = CollectedCommit(commit=commit)
                entry.branches.add(walk.branch)

        return history
