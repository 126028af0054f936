import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from repograph.api.schemas import (
    AnnotatedCommitResponse,
    BranchesResponse,
    CommitResponse,
    GraphBranchResponse,
    GraphCommitResponse,
    GraphResponse,
    SignatureResponse,
)
from repograph.config import Settings
from repograph.dag import refs
from repograph.dag.builder import GraphBuilder
from repograph.dag.collector import HistoryCollector
from repograph.dag.models import CollectedHistory, CommitGraph, CommitInfo
from repograph.diff.text_diff import TextDiffGenerator, TreeFileReader
from repograph.diff.tree_diff import TreeDiffer
from repograph.git_objects.errors import ObjectReadFailure, UnresolvableRef
from repograph.git_objects.models import CommitObject, Signature, TreeObject
from repograph.git_objects.repository import Repository

logger = logging.getLogger(__name__)

INITIAL_COMMIT_MESSAGE = (
    "diff --git (Initial Commit)\n"
    "Commit: {short}\n"
    "Initial commit - no parent to compare against\n"
    "This is the first commit in the repository.\n"
)

NO_CHANGES_MESSAGE = "diff --git a/{a} b/{b}\n\nNo changes found."

RepoPath = Union[str, Path]


def _signature(sig: Signature) -> SignatureResponse:
    return SignatureResponse(name=sig.name, email=sig.email, timestamp=sig.timestamp)


def _commit_response(commit: CommitInfo) -> CommitResponse:
    return CommitResponse(
        oid=commit.oid,
        tree_oid=commit.tree_oid,
        parent_oids=commit.parents,
        author=_signature(commit.author),
        committer=_signature(commit.committer),
        message=commit.message,
    )


class RepoService:
    """Read-only queries over a repository; every call opens the repository afresh."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()

    def _depth(self, depth: Optional[int]) -> int:
        return depth if depth is not None else self.settings.history_depth

    def list_branches(self, repo_path: RepoPath) -> BranchesResponse:
        repo = Repository.open(repo_path)
        return BranchesResponse(branches=repo.list_branches(), current=refs.current_branch(repo.git_dir))

    def list_commits(self, repo_path: RepoPath, branch: str, depth: Optional[int] = None) -> List[CommitResponse]:
        repo = Repository.open(repo_path)
        _, commits = HistoryCollector(repo).walk_branch(branch, self._depth(depth))
        return [_commit_response(commit) for commit in commits]

    def list_all_commits(self, repo_path: RepoPath, branch_names: Sequence[str],
                         depth: Optional[int] = None) -> List[AnnotatedCommitResponse]:
        """Commits of several branches with the branches containing them, newest first."""
        repo = Repository.open(repo_path)
        history = self._collect(repo, branch_names, depth)
        entries = sorted(history.commits.values(), key=lambda e: (-e.commit.timestamp, e.commit.oid))
        return [
            AnnotatedCommitResponse(**_commit_response(entry.commit).model_dump(), branches=sorted(entry.branches))
            for entry in entries
        ]

    def _collect(self, repo: Repository, branch_names: Sequence[str], depth: Optional[int]) -> CollectedHistory:
        # no selection means every branch
        branch_names = list(branch_names) or repo.list_branches()
        history = HistoryCollector(repo, workers=self.settings.io_workers).collect(branch_names, self._depth(depth))
        if branch_names and not history.branch_tips:
            failures = "; ".join(f"{name}: {message}" for name, message in history.failed.items())
            raise UnresolvableRef(f"None of the requested branches could be read ({failures})")
        return history

    def _tree_of(self, repo: Repository, name: str) -> str:
        oid = repo.resolve(name)
        obj = repo.read_object(oid)
        if isinstance(obj, CommitObject):
            return obj.tree_oid
        if isinstance(obj, TreeObject):
            return oid
        raise ObjectReadFailure(f"{name} does not name a commit or a tree")

    def _diff_trees(self, repo: Repository, tree_a: str, tree_b: str) -> Optional[str]:
        result = TreeDiffer(repo).diff(tree_a, tree_b)
        if "" in result.unreadable:
            raise ObjectReadFailure(f"Unable to read root tree {tree_a} or {tree_b}")
        if result.unreadable:
            logger.warning(f"Diff {tree_a[:7]}..{tree_b[:7]} skipped unreadable subtrees: {result.unreadable}")
        if not result.changes:
            return None

        generator = TextDiffGenerator(
            TreeFileReader(repo, tree_a),
            TreeFileReader(repo, tree_b),
            max_files=self.settings.diff_max_files,
            max_file_bytes=self.settings.diff_max_file_bytes,
            workers=self.settings.io_workers,
        )
        return generator.render(result.changes)

    def get_tree_diff(self, repo_path: RepoPath, id_a: str, id_b: str) -> str:
        repo = Repository.open(repo_path)
        diff = self._diff_trees(repo, self._tree_of(repo, id_a), self._tree_of(repo, id_b))
        return diff if diff is not None else NO_CHANGES_MESSAGE.format(a=id_a, b=id_b)

    def compare_branches(self, repo_path: RepoPath, branch_a: str, branch_b: str) -> str:
        repo = Repository.open(repo_path)
        tip_a = repo.resolve(branch_a)
        tip_b = repo.resolve(branch_b)
        return self.get_tree_diff(repo_path, tip_a, tip_b)

    def get_commit_diff(self, repo_path: RepoPath, commit_id: str) -> str:
        repo = Repository.open(repo_path)
        oid = repo.resolve(commit_id)
        commit = repo.read_commit(oid)
        if not commit.parent_oids:
            return INITIAL_COMMIT_MESSAGE.format(short=oid[:7])

        # merge commits are compared against their first parent
        parent = repo.read_commit(commit.parent_oids[0])
        diff = self._diff_trees(repo, parent.tree_oid, commit.tree_oid)
        return diff if diff is not None else NO_CHANGES_MESSAGE.format(a=parent.oid, b=oid)

    def build_graph(self, repo_path: RepoPath, branch_names: Sequence[str],
                    per_branch_depth: Optional[int] = None) -> CommitGraph:
        repo = Repository.open(repo_path)
        history = self._collect(repo, branch_names, per_branch_depth)
        return GraphBuilder(self.settings.graph_config).build(history)

    def get_graph(self, repo_path: RepoPath, branch_names: Sequence[str],
                  per_branch_depth: Optional[int] = None) -> GraphResponse:
        graph = self.build_graph(repo_path, branch_names, per_branch_depth)
        return GraphResponse(
            version=graph.version,
            commits=[
                GraphCommitResponse(
                    oid=node.oid,
                    message=node.commit.message,
                    author=_signature(node.commit.author),
                    timestamp=node.commit.timestamp,
                    parents=node.parents,
                    children=node.children,
                    branches=node.branches,
                    primary_branch=node.primary_branch,
                )
                for node in graph.commits
            ],
            branch_tips=graph.branch_tips,
            branches=[GraphBranchResponse(name=b.name, tip=b.tip, color=b.color) for b in graph.branches],
            failed_branches=graph.failed_branches,
        )
