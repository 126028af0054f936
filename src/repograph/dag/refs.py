from pathlib import Path
from typing import Optional, Dict, Set

MAX_SYMREF_DEPTH = 10


def read_packed_refs(git_dir: Path) -> Dict[str, str]:
    """Parses ``packed-refs`` into a mapping of full ref path to OID."""
    packed_path = git_dir / "packed-refs"
    refs: Dict[str, str] = {}
    if not packed_path.exists():
        return refs

    for line in packed_path.read_text().splitlines():
        # '#' starts the header, '^' peels the previous annotated tag
        if not line or line.startswith(("#", "^")):
            continue
        oid, _, ref = line.partition(" ")
        if ref:
            refs[ref.strip()] = oid.strip()
    return refs


def resolve_ref(git_dir: Path, ref_path: str, _depth: int = 0) -> Optional[str]:
    """Resolves a reference (e.g., 'refs/heads/main') to an OID."""
    if _depth > MAX_SYMREF_DEPTH:
        return None

    full_path = git_dir / ref_path
    if full_path.is_file():
        try:
            content = full_path.read_text().strip()
        except (OSError, UnicodeDecodeError):
            # not a ref file (e.g. the binary index)
            return None
        if content.startswith("ref: "):
            # Recursive resolution (e.g. HEAD -> refs/heads/main)
            return resolve_ref(git_dir, content[5:], _depth + 1)
        return content or None

    return read_packed_refs(git_dir).get(ref_path)


def resolve_head(git_dir: Path = Path(".git")) -> Optional[str]:
    """Resolves HEAD to the current commit OID."""
    return resolve_ref(git_dir, "HEAD")


def current_branch(git_dir: Path = Path(".git")) -> Optional[str]:
    """Returns the branch HEAD points at, or None for a detached HEAD."""
    head_path = git_dir / "HEAD"
    if not head_path.is_file():
        return None
    content = head_path.read_text().strip()
    if content.startswith("ref: refs/heads/"):
        return content[len("ref: refs/heads/"):]
    return None


def get_branches(git_dir: Path = Path(".git")) -> Dict[str, str]:
    """Returns a dictionary of branch names and their tip OIDs, sorted by name."""
    branches: Dict[str, str] = {}

    for ref, oid in read_packed_refs(git_dir).items():
        if ref.startswith("refs/heads/"):
            branches[ref[len("refs/heads/"):]] = oid

    heads_dir = git_dir / "refs" / "heads"
    if heads_dir.exists():
        for path in heads_dir.glob("**/*"):
            if path.is_file():
                # branch name is relative to refs/heads; loose refs win over packed ones
                branch_name = path.relative_to(heads_dir).as_posix()
                branches[branch_name] = path.read_text().strip()

    return dict(sorted(branches.items()))


def read_shallow(git_dir: Path) -> Set[str]:
    """Commit ids at the boundary of a shallow clone."""
    shallow_path = git_dir / "shallow"
    if not shallow_path.exists():
        return set()
    return {line.strip() for line in shallow_path.read_text().splitlines() if line.strip()}
