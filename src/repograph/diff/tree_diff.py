import logging
from typing import Iterator, List, Optional, Tuple, Union

from repograph.git_objects.errors import ObjectReadFailure
from repograph.git_objects.models import TreeObject
from repograph.git_objects.repository import Repository
from .models import ChangeKind, ChangeRecord, TreeDiffResult

logger = logging.getLogger(__name__)

# (tree_a, tree_b, prefix) still to be compared
_Subtree = Tuple[str, str, str]


def join_path(prefix: str, name: str) -> str:
    return f"{prefix}/{name}" if prefix else name


class TreeDiffer:
    """Compares two trees and yields changed file paths without reading blobs.

    Subtrees with identical ids are never opened, so cost grows with the
    changed part of the tree only. The traversal keeps an explicit stack
    instead of recursing.
    """

    def __init__(self, repo: Repository):
        self.repo = repo

    def diff(self, tree_a: str, tree_b: str, prefix: str = "") -> TreeDiffResult:
        result = TreeDiffResult()
        if tree_a == tree_b:
            return result

        stack: List[Iterator[Union[ChangeRecord, _Subtree]]] = [
            iter(self._compare(tree_a, tree_b, prefix, result))
        ]
        while stack:
            item = next(stack[-1], None)
            if item is None:
                stack.pop()
            elif isinstance(item, ChangeRecord):
                result.changes.append(item)
            else:
                # descend in place so records keep the order of a depth-first walk
                stack.append(iter(self._compare(*item, result)))

        logger.debug(f"Tree diff {tree_a[:7]}..{tree_b[:7]}: {len(result.changes)} change(s)")
        return result

    def _read(self, oid: str, prefix: str, result: TreeDiffResult) -> Optional[TreeObject]:
        try:
            return self.repo.read_tree(oid)
        except ObjectReadFailure as e:
            logger.warning(f"Skipping unreadable tree at '{prefix or '/'}': {e.message}")
            result.unreadable.append(prefix)
            return None

    def _compare(self, tree_a: str, tree_b: str, prefix: str,
                 result: TreeDiffResult) -> List[Union[ChangeRecord, _Subtree]]:
        left = self._read(tree_a, prefix, result)
        right = self._read(tree_b, prefix, result)
        if left is None or right is None:
            return []

        entries_b = right.by_name()
        names_a = set()
        items: List[Union[ChangeRecord, _Subtree]] = []

        for entry_a in left.entries:
            names_a.add(entry_a.name)
            path = join_path(prefix, entry_a.name)
            entry_b = entries_b.get(entry_a.name)

            if entry_b is None:
                items.append(ChangeRecord(path, ChangeKind.DELETED))
            elif entry_a.oid == entry_b.oid:
                continue
            elif entry_a.is_tree and entry_b.is_tree:
                items.append((entry_a.oid, entry_b.oid, path))
            else:
                items.append(ChangeRecord(path, ChangeKind.MODIFIED))

        for entry_b in right.entries:
            if entry_b.name not in names_a:
                items.append(ChangeRecord(join_path(prefix, entry_b.name), ChangeKind.ADDED))

        return items
