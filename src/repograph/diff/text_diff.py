import difflib
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

from repograph.git_objects.errors import ObjectReadFailure
from repograph.git_objects.models import TreeObject
from repograph.git_objects.repository import Repository
from .models import ChangeKind, ChangeRecord, FileDiff, FileDiffStatus
from .tree_diff import join_path

logger = logging.getLogger(__name__)

MAX_FILES = 10
MAX_FILE_BYTES = 1024 * 1024
CONTEXT_LINES = 3

TOO_LARGE_MARKER = "@@ File too large to display @@"
UNREADABLE_MARKER = "@@ Binary file or read error @@"
NO_NEWLINE_MARKER = "\\ No newline at end of file"

_LINE_RE = re.compile(r"[^\n]*\n|[^\n]+\Z")


class TreeFileReader:
    """Reads file content by path from one tree, caching the trees it walks."""

    def __init__(self, repo: Repository, tree_oid: str):
        self.repo = repo
        self.tree_oid = tree_oid
        self._trees: Dict[str, TreeObject] = {}

    def _tree(self, oid: str) -> TreeObject:
        tree = self._trees.get(oid)
        if tree is None:
            tree = self._trees[oid] = self.repo.read_tree(oid)
        return tree

    def read(self, path: str) -> bytes:
        parts = path.split("/")
        current = self.tree_oid

        for depth, part in enumerate(parts[:-1]):
            entry = self._tree(current).by_name().get(part)
            if entry is None or not entry.is_tree:
                raise ObjectReadFailure(f"Directory not found: {'/'.join(parts[:depth + 1])}")
            current = entry.oid

        entry = self._tree(current).by_name().get(parts[-1])
        if entry is None or entry.is_tree:
            raise ObjectReadFailure(f"File not found: {path}")
        return self.repo.read_blob(entry.oid).data


def _decode(data: bytes) -> Optional[str]:
    if b"\x00" in data:
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None


def split_lines(text: str) -> List[str]:
    """Splits on ``\\n`` only, keeping the endings; ``\\r`` and other separators stay in the line."""
    return _LINE_RE.findall(text)


def _content_line(line: str) -> List[str]:
    if line.endswith("\n"):
        return [line[:-1]]
    return [line, NO_NEWLINE_MARKER]


class _Placeholder(Exception):
    def __init__(self, status: FileDiffStatus):
        super().__init__(status.value)
        self.status = status


class TextDiffGenerator:
    def __init__(self, old_reader: TreeFileReader, new_reader: TreeFileReader,
                 path_prefix: str = "", max_files: int = MAX_FILES,
                 max_file_bytes: int = MAX_FILE_BYTES, context: int = CONTEXT_LINES,
                 workers: int = 1):
        self.old_reader = old_reader
        self.new_reader = new_reader
        self.path_prefix = path_prefix
        self.max_files = max_files
        self.max_file_bytes = max_file_bytes
        self.context = context
        self.workers = workers

    def _read(self, reader: TreeFileReader, path: str) -> bytes:
        data = reader.read(path)
        if len(data) > self.max_file_bytes:
            raise _Placeholder(FileDiffStatus.TOO_LARGE)
        return data

    @staticmethod
    def _lines(data: bytes) -> List[str]:
        text = _decode(data)
        if text is None:
            raise _Placeholder(FileDiffStatus.UNREADABLE)
        return split_lines(text)

    def _body(self, record: ChangeRecord, path: str) -> str:
        out: List[str] = []
        if record.kind is ChangeKind.ADDED:
            lines = self._lines(self._read(self.new_reader, record.path))
            out = ["new file mode 100644", "--- /dev/null", f"+++ b/{path}",
                   f"@@ -0,0 +1,{len(lines)} @@"]
            for line in lines:
                out.extend(_content_line("+" + line))
        elif record.kind is ChangeKind.DELETED:
            lines = self._lines(self._read(self.old_reader, record.path))
            out = ["deleted file mode 100644", f"--- a/{path}", "+++ /dev/null",
                   f"@@ -1,{len(lines)} +0,0 @@"]
            for line in lines:
                out.extend(_content_line("-" + line))
        else:
            # both sizes are checked before either side is decoded
            old_data = self._read(self.old_reader, record.path)
            new_data = self._read(self.new_reader, record.path)
            old_lines, new_lines = self._lines(old_data), self._lines(new_data)
            diff = difflib.unified_diff(
                old_lines, new_lines, f"a/{path}", f"b/{path}", n=self.context, lineterm="")
            for i, line in enumerate(diff):
                if i < 2 or line.startswith("@@"):
                    out.append(line)
                else:
                    out.extend(_content_line(line))
            if not out:
                # content identical, e.g. only the file mode changed
                out = [f"--- a/{path}", f"+++ b/{path}"]
        return "\n".join(out) + "\n"

    def render_file(self, record: ChangeRecord) -> FileDiff:
        path = join_path(self.path_prefix, record.path)
        header = f"diff --git a/{path} b/{path}\n"
        status = FileDiffStatus.OK
        try:
            body = self._body(record, path)
        except _Placeholder as e:
            status = e.status
        except ObjectReadFailure as e:
            logger.warning(f"Unable to read {path}: {e.message}")
            status = FileDiffStatus.UNREADABLE

        if status is FileDiffStatus.TOO_LARGE:
            body = f"--- a/{path}\n+++ b/{path}\n{TOO_LARGE_MARKER}\n"
        elif status is FileDiffStatus.UNREADABLE:
            body = f"--- a/{path}\n+++ b/{path}\n{UNREADABLE_MARKER}\n"

        return FileDiff(path=path, kind=record.kind, status=status, text=header + body + "\n")

    def render_sections(self, changes: Sequence[ChangeRecord]) -> List[FileDiff]:
        shown = list(changes[:self.max_files])
        if self.workers > 1 and len(shown) > 1:
            # map() yields in input order regardless of completion order
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                return list(executor.map(self.render_file, shown))
        return [self.render_file(record) for record in shown]

    def render(self, changes: Sequence[ChangeRecord]) -> str:
        output = "".join(section.text for section in self.render_sections(changes))
        omitted = len(changes) - self.max_files
        if omitted > 0:
            output += f"\n# {omitted} more file(s) changed (showing first {self.max_files})\n"
        return output


def render(changes: Sequence[ChangeRecord], old_reader: TreeFileReader, new_reader: TreeFileReader,
           path_prefix: str = "", max_files: int = MAX_FILES, max_file_bytes: int = MAX_FILE_BYTES,
           context: int = CONTEXT_LINES, workers: int = 1) -> str:
    """Renders ``changes`` as unified diff text; per-file failures become placeholder lines."""
    generator = TextDiffGenerator(old_reader, new_reader, path_prefix=path_prefix, max_files=max_files,
                                  max_file_bytes=max_file_bytes, context=context, workers=workers)
    return generator.render(changes)
