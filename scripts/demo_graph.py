import sys
from pathlib import Path

from repograph.dag.builder import GraphBuilder
from repograph.dag.collector import HistoryCollector
from repograph.git_objects.errors import RepoGraphError
from repograph.git_objects.repository import Repository


def main():
    repo_path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path(".")
    branch_names = sys.argv[2:]

    try:
        repo = Repository.open(repo_path)
    except RepoGraphError as e:
        print(e.message)
        return 1

    branch_names = branch_names or repo.list_branches()
    print(f"Collecting history of {', '.join(branch_names) or 'no branches'}...")
    history = HistoryCollector(repo).collect(branch_names)
    for branch, message in history.failed.items():
        print(f"  skipped {branch}: {message}")

    graph = GraphBuilder().build(history)
    print(f"Loaded {len(graph.commits)} commits.\n")

    for node in graph.commits:
        parents = " ".join(p[:7] for p in node.parents)
        print(f"* {node.oid[:7]} [{node.primary_branch}] ({parents}) - {node.commit.summary}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
