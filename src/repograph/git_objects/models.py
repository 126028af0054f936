from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional
import binascii
import hashlib
import re

TREE_MODE = b"40000"

_SIGNATURE_RE = re.compile(r"^(?P<name>.*?)\s*<(?P<email>[^>]*)>\s*(?P<ts>-?\d+)?\s*(?P<tz>[+-]\d{4})?\s*$")


@dataclass
class GitObject(ABC):
    oid: Optional[str] = field(default=None, init=False)

    @property
    @abstractmethod
    def type(self) -> bytes:
        pass

    @abstractmethod
    def serialize(self) -> bytes:
        pass

    @classmethod
    @abstractmethod
    def deserialize(cls, data: bytes) -> "GitObject":
        pass

    def compute_oid(self) -> str:
        """Computes and sets the SHA-1 hash of the object."""
        data = self.serialize()
        header = f"{self.type.decode()} {len(data)}".encode() + b"\x00"
        self.oid = hashlib.sha1(header + data).hexdigest()
        return self.oid


@dataclass
class BlobObject(GitObject):
    data: bytes

    @property
    def type(self) -> bytes:
        return b"blob"

    def serialize(self) -> bytes:
        return self.data

    @classmethod
    def deserialize(cls, data: bytes) -> "BlobObject":
        return cls(data=data)


@dataclass
class TreeEntry:
    mode: bytes
    name: str
    oid: str

    @property
    def is_tree(self) -> bool:
        return self.mode.lstrip(b"0") == TREE_MODE

    @property
    def kind(self) -> str:
        return "tree" if self.is_tree else "blob"


def _tree_sort_key(entry: TreeEntry) -> bytes:
    # git compares directory names as if they ended with "/"
    name = entry.name.encode()
    return name + b"/" if entry.is_tree else name


@dataclass
class TreeObject(GitObject):
    entries: List[TreeEntry] = field(default_factory=list)

    @property
    def type(self) -> bytes:
        return b"tree"

    def serialize(self) -> bytes:
        output = b""
        for entry in sorted(self.entries, key=_tree_sort_key):
            # Mode name\0hash (binary)
            oid_bytes = binascii.unhexlify(entry.oid)
            output += entry.mode + b" " + entry.name.encode() + b"\x00" + oid_bytes
        return output

    @classmethod
    def deserialize(cls, data: bytes) -> "TreeObject":
        entries = []
        i = 0
        while i < len(data):
            space_idx = data.find(b" ", i)
            if space_idx == -1:
                raise ValueError("Invalid tree entry (no mode separator)")
            mode = data[i:space_idx]

            null_idx = data.find(b"\x00", space_idx)
            if null_idx == -1 or null_idx + 21 > len(data):
                raise ValueError("Invalid tree entry (truncated)")
            name = data[space_idx + 1:null_idx].decode("utf-8", errors="surrogateescape")

            # 20 raw bytes of SHA-1
            oid = binascii.hexlify(data[null_idx + 1:null_idx + 21]).decode()

            entries.append(TreeEntry(mode=mode, name=name, oid=oid))
            i = null_idx + 21

        return cls(entries=entries)

    def by_name(self) -> dict:
        return {entry.name: entry for entry in self.entries}


@dataclass(frozen=True)
class Signature:
    name: str
    email: str
    timestamp: int = 0
    tz_offset: str = "+0000"

    @classmethod
    def parse(cls, raw: str) -> "Signature":
        """Parses ``Name <email> 1700000000 +0200``; falls back to the raw text as the name."""
        match = _SIGNATURE_RE.match(raw)
        if not match:
            return cls(name=raw.strip(), email="")
        return cls(
            name=match.group("name"),
            email=match.group("email"),
            timestamp=int(match.group("ts") or 0),
            tz_offset=match.group("tz") or "+0000",
        )


@dataclass
class CommitObject(GitObject):
    tree_oid: str
    parent_oids: List[str]
    author: str
    committer: str
    message: str

    @property
    def type(self) -> bytes:
        return b"commit"

    @property
    def author_signature(self) -> Signature:
        return Signature.parse(self.author)

    @property
    def committer_signature(self) -> Signature:
        return Signature.parse(self.committer)

    def serialize(self) -> bytes:
        lines = [f"tree {self.tree_oid}".encode()]
        for p in self.parent_oids:
            lines.append(f"parent {p}".encode())
        lines.append(f"author {self.author}".encode())
        lines.append(f"committer {self.committer}".encode())
        lines.append(b"")
        lines.append(self.message.encode())

        return b"\n".join(lines)

    @classmethod
    def deserialize(cls, data: bytes) -> "CommitObject":
        lines = data.decode("utf-8", errors="replace").split("\n")

        tree_oid = ""
        parent_oids = []
        author = ""
        committer = ""

        i = 0
        while i < len(lines):
            line = lines[i]
            i += 1
            if not line:
                # Empty line indicates end of headers
                break

            if line.startswith("tree "):
                tree_oid = line[5:]
            elif line.startswith("parent "):
                parent_oids.append(line[7:])
            elif line.startswith("author "):
                author = line[7:]
            elif line.startswith("committer "):
                committer = line[10:]
            # continuation lines (gpgsig, mergetag) start with a space and are ignored

        if not tree_oid:
            raise ValueError("Invalid commit (no tree header)")

        return cls(
            tree_oid=tree_oid,
            parent_oids=parent_oids,
            author=author,
            committer=committer,
            message="\n".join(lines[i:]),
        )
