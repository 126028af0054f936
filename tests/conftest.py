import zlib
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

import pytest

from repograph.git_objects.models import BlobObject, CommitObject, GitObject, TreeEntry, TreeObject

FileTree = Dict[str, Union[str, bytes, "FileTree"]]


def write_object(obj: GitObject, git_dir: Path) -> str:
    """Stores ``obj`` as a loose object and returns its OID."""
    data = obj.serialize()
    store = f"{obj.type.decode()} {len(data)}".encode() + b"\x00" + data
    oid = obj.compute_oid()

    obj_file = git_dir / "objects" / oid[:2] / oid[2:]
    obj_file.parent.mkdir(parents=True, exist_ok=True)
    if not obj_file.exists():
        obj_file.write_bytes(zlib.compress(store))
    return oid


class RepoBuilder:
    """Writes a small repository of loose objects for tests."""

    def __init__(self, root: Path):
        self.root = root
        self.git_dir = root / ".git"
        (self.git_dir / "objects").mkdir(parents=True)
        (self.git_dir / "refs" / "heads").mkdir(parents=True)
        (self.git_dir / "HEAD").write_text("ref: refs/heads/main\n")
        self.clock = 1_700_000_000

    def blob(self, content: Union[str, bytes]) -> str:
        data = content.encode() if isinstance(content, str) else content
        return write_object(BlobObject(data), self.git_dir)

    def tree(self, files: FileTree) -> str:
        entries = []
        for name, value in files.items():
            if isinstance(value, dict):
                entries.append(TreeEntry(mode=b"40000", name=name, oid=self.tree(value)))
            else:
                entries.append(TreeEntry(mode=b"100644", name=name, oid=self.blob(value)))
        return write_object(TreeObject(entries=entries), self.git_dir)

    def commit(self, files: Union[FileTree, str], parents: Iterable[str] = (),
               message: str = "commit", timestamp: Optional[int] = None) -> str:
        tree_oid = files if isinstance(files, str) else self.tree(files)
        if timestamp is None:
            self.clock += 60
            timestamp = self.clock
        signature = f"Tester <tester@example.com> {timestamp} +0000"
        commit = CommitObject(
            tree_oid=tree_oid,
            parent_oids=list(parents),
            author=signature,
            committer=signature,
            message=message + "\n",
        )
        return write_object(commit, self.git_dir)

    def branch(self, name: str, oid: str) -> str:
        ref = self.git_dir / "refs" / "heads" / name
        ref.parent.mkdir(parents=True, exist_ok=True)
        ref.write_text(oid + "\n")
        return oid

    def corrupt(self, oid: str) -> str:
        """Places garbage at ``oid``'s loose object path."""
        path = self.git_dir / "objects" / oid[:2] / oid[2:]
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"not a zlib stream")
        return oid


@pytest.fixture
def repo_builder(tmp_path):
    return RepoBuilder(tmp_path / "repo")


@pytest.fixture
def two_branch_repo(repo_builder):
    """main: A <- B <- C, feature: A <- B <- D."""
    b = repo_builder
    a = b.commit({"README.md": "readme\n"}, message="A")
    bb = b.commit({"README.md": "readme\n", "lib": {"core.py": "x = 1\n"}}, [a], message="B")
    c = b.commit({"README.md": "readme\nmore\n", "lib": {"core.py": "x = 1\n"}}, [bb], message="C")
    d = b.commit({"README.md": "readme\n", "lib": {"core.py": "x = 2\n"}, "x.txt": "hello\n"}, [bb], message="D")
    b.branch("main", c)
    b.branch("feature", d)
    return b, {"A": a, "B": bb, "C": c, "D": d}
