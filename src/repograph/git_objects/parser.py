import re
import subprocess
import zlib
from pathlib import Path

from .errors import ObjectReadFailure
from .models import GitObject, BlobObject, TreeObject, CommitObject

OID_RE = re.compile(r"^[0-9a-f]{40}$")

_OBJECT_TYPES = {
    b"blob": BlobObject,
    b"tree": TreeObject,
    b"commit": CommitObject,
}


def is_oid(value: str) -> bool:
    return bool(OID_RE.match(value))


def loose_object_path(oid: str, git_dir: Path) -> Path:
    return git_dir / "objects" / oid[:2] / oid[2:]


def _build(obj_type: bytes, content: bytes, oid: str) -> GitObject:
    cls = _OBJECT_TYPES.get(obj_type)
    if cls is None:
        raise ObjectReadFailure(f"Unsupported object type {obj_type.decode(errors='replace')!r} for {oid}")
    try:
        obj = cls.deserialize(content)
    except (ValueError, UnicodeDecodeError) as e:
        raise ObjectReadFailure(f"Corrupt {obj_type.decode()} object {oid}: {e}") from e
    obj.oid = oid
    return obj


def _read_packed(oid: str, git_dir: Path) -> GitObject:
    """Reads an object through ``git cat-file`` (handles packfiles)."""
    try:
        type_proc = subprocess.run(
            ["git", "--git-dir", str(git_dir), "cat-file", "-t", oid],
            capture_output=True,
            check=True,
        )
        obj_type = type_proc.stdout.strip()

        # 'git cat-file <type>' returns the raw payload, '-p' would pretty-print it
        content_proc = subprocess.run(
            ["git", "--git-dir", str(git_dir), "cat-file", obj_type.decode(), oid],
            capture_output=True,
            check=True,
        )
    except subprocess.CalledProcessError as e:
        stderr_msg = e.stderr.decode(errors="replace").strip() if e.stderr else "No stderr"
        raise ObjectReadFailure(f"Object {oid} not found in loose objects or packfiles: {stderr_msg}") from e
    except OSError as e:
        raise ObjectReadFailure(f"Object {oid} is not a loose object and git is unavailable: {e}") from e

    return _build(obj_type, content_proc.stdout, oid)


def read_object(oid: str, git_dir: Path = Path(".git")) -> GitObject:
    """Read an object from the git directory by its SHA-1 hash."""
    if not is_oid(oid):
        raise ObjectReadFailure(f"Invalid Object ID: {oid}")

    path = loose_object_path(oid, git_dir)
    if not path.exists():
        return _read_packed(oid, git_dir)

    try:
        raw_data = zlib.decompress(path.read_bytes())
    except (OSError, zlib.error) as e:
        raise ObjectReadFailure(f"Unable to read object {oid}: {e}") from e

    # format: "type size\0content"
    null_idx = raw_data.find(b"\x00")
    if null_idx == -1:
        raise ObjectReadFailure(f"Invalid object format for {oid} (no null byte)")

    try:
        type_str, size_str = raw_data[:null_idx].split(b" ")
        size = int(size_str)
    except ValueError as e:
        raise ObjectReadFailure(f"Invalid object header for {oid}") from e

    content = raw_data[null_idx + 1:]
    if size != len(content):
        raise ObjectReadFailure(f"Object {oid} is truncated ({len(content)} of {size} bytes)")

    return _build(type_str, content, oid)


def object_exists(oid: str, git_dir: Path) -> bool:
    if not is_oid(oid):
        return False
    if loose_object_path(oid, git_dir).exists():
        return True
    try:
        subprocess.run(
            ["git", "--git-dir", str(git_dir), "cat-file", "-e", oid],
            capture_output=True,
            check=True,
        )
    except (subprocess.CalledProcessError, OSError):
        return False
    return True
