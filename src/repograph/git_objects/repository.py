import logging
import re
from functools import cached_property
from pathlib import Path
from typing import Dict, List, Set, Union

from repograph.dag import refs
from .errors import InvalidRepository, ObjectReadFailure, UnresolvableRef
from .models import BlobObject, CommitObject, GitObject, TreeObject
from .parser import is_oid, object_exists, read_object

logger = logging.getLogger(__name__)

REF_SEARCH_PATHS = (
    "refs/heads/{}",
    "refs/remotes/{}",
    "refs/tags/{}",
)

# names that may be looked up as-is relative to the git dir
PSEUDO_REF_RE = re.compile(r"^[A-Z][A-Z_]*$")


def _search_paths(name: str) -> List[str]:
    paths = [template.format(name) for template in REF_SEARCH_PATHS]
    if name.startswith("refs/") or PSEUDO_REF_RE.match(name):
        paths.append(name)
    return paths


def _is_git_dir(path: Path) -> bool:
    return (path / "HEAD").is_file() and (path / "objects").is_dir()


def find_git_dir(repo_path: Union[str, Path]) -> Path:
    """Locates the object store for a working tree, a linked worktree or a bare repository."""
    path = Path(repo_path).expanduser()
    if not path.is_dir():
        raise InvalidRepository(f"Repository path does not exist or is not a directory: {path}")

    dot_git = path / ".git"
    if dot_git.is_dir():
        candidate = dot_git
    elif dot_git.is_file():
        # Linked worktrees and submodules: ".git" holds "gitdir: <path>"
        content = dot_git.read_text().strip()
        if not content.startswith("gitdir: "):
            raise InvalidRepository(f"Malformed .git file in {path}")
        candidate = (path / content[len("gitdir: "):]).resolve()
        commondir = candidate / "commondir"
        if commondir.is_file():
            candidate = (candidate / commondir.read_text().strip()).resolve()
    else:
        candidate = path

    if not _is_git_dir(candidate):
        raise InvalidRepository(f"Not a git repository (or any of the parent directories): {path}")
    return candidate.resolve()


class Repository:
    """Read-only access to the objects and refs of one repository."""

    def __init__(self, git_dir: Path):
        self.git_dir = git_dir

    @classmethod
    def open(cls, repo_path: Union[str, Path]) -> "Repository":
        return cls(find_git_dir(repo_path))

    def read_object(self, oid: str) -> GitObject:
        return read_object(oid, self.git_dir)

    def read_commit(self, oid: str) -> CommitObject:
        obj = self.read_object(oid)
        if not isinstance(obj, CommitObject):
            raise ObjectReadFailure(f"Object {oid} is a {obj.type.decode()}, not a commit")
        return obj

    def read_tree(self, oid: str) -> TreeObject:
        obj = self.read_object(oid)
        if not isinstance(obj, TreeObject):
            raise ObjectReadFailure(f"Object {oid} is a {obj.type.decode()}, not a tree")
        return obj

    def read_blob(self, oid: str) -> BlobObject:
        obj = self.read_object(oid)
        if not isinstance(obj, BlobObject):
            raise ObjectReadFailure(f"Object {oid} is a {obj.type.decode()}, not a blob")
        return obj

    def resolve(self, name: str) -> str:
        """Resolves a branch name, ref path or full object id to an OID."""
        name = name.strip()
        if not name:
            raise UnresolvableRef("Empty ref name")
        if name.startswith("/") or ".." in name.split("/"):
            raise UnresolvableRef(f"Invalid ref name: {name}")

        if name == "HEAD":
            oid = refs.resolve_head(self.git_dir)
            if oid:
                return oid
        else:
            for ref_path in _search_paths(name):
                oid = refs.resolve_ref(self.git_dir, ref_path)
                if oid and is_oid(oid):
                    return oid

        if is_oid(name.lower()) and object_exists(name.lower(), self.git_dir):
            return name.lower()

        raise UnresolvableRef(f"Could not find {name}")

    def list_branches(self) -> List[str]:
        return list(refs.get_branches(self.git_dir))

    def branch_tips(self) -> Dict[str, str]:
        return refs.get_branches(self.git_dir)

    @cached_property
    def shallow_oids(self) -> Set[str]:
        return refs.read_shallow(self.git_dir)
