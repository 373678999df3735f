"""Project file tree - nodes, forest and file-selection lookup."""

from collections.abc import Iterator
from enum import Enum

from pydantic import BaseModel

LANGUAGE_BY_EXTENSION = {
    "ts": "typescript",
    "tsx": "typescript",
    "js": "javascript",
    "jsx": "javascript",
    "mjs": "javascript",
    "cjs": "javascript",
    "json": "json",
    "html": "html",
    "css": "css",
    "scss": "scss",
    "md": "markdown",
    "py": "python",
    "yml": "yaml",
    "yaml": "yaml",
    "svg": "xml",
    "xml": "xml",
    "sh": "shell",
}


class NodeKind(str, Enum):
    FILE = "file"
    FOLDER = "folder"


class FileTreeNode(BaseModel):
    """File or folder. Path is the full '/'-delimited path from the project root."""

    name: str
    kind: NodeKind
    path: str
    content: str | None = None
    children: list["FileTreeNode"] | None = None

    @property
    def is_file(self) -> bool:
        return self.kind == NodeKind.FILE


class FileContent(BaseModel):
    """Selected file, as shown in an editor."""

    path: str
    content: str
    language: str


def detect_language(path: str) -> str:
    """Editor language id from file extension ("plaintext" when unknown)."""
    name = path.rsplit("/", 1)[-1]
    if "." not in name:
        return "plaintext"
    return LANGUAGE_BY_EXTENSION.get(name.rsplit(".", 1)[-1].lower(), "plaintext")


class Forest:
    """Ordered root nodes plus a path-keyed index over every node.

    The index gives O(1) folder/file resolution while each folder keeps an
    ordered children list for deterministic traversal and export. Nodes are
    only attached through add_node() so the index and the tree stay in step.
    """

    def __init__(self, roots: list[FileTreeNode] | None = None) -> None:
        self._roots: list[FileTreeNode] = roots if roots is not None else []
        self._index: dict[str, FileTreeNode] = {}
        for node in self.walk():
            self._index.setdefault(node.path, node)

    @classmethod
    def from_nodes(cls, nodes: list[FileTreeNode]) -> "Forest":
        """Build a forest from detached nodes (deep-copied, caller keeps its list)."""
        return cls([n.model_copy(deep=True) for n in nodes])

    @property
    def roots(self) -> list[FileTreeNode]:
        return self._roots

    def __len__(self) -> int:
        return len(self._index)

    def is_empty(self) -> bool:
        return not self._roots

    def get(self, path: str) -> FileTreeNode | None:
        return self._index.get(path)

    def add_node(self, parent: FileTreeNode | None, node: FileTreeNode) -> FileTreeNode:
        """Append node under parent (None = root) and index it."""
        siblings = self._roots if parent is None else parent.children
        if siblings is None:
            parent.children = siblings = []
        siblings.append(node)
        self._index[node.path] = node
        return node

    def walk(self) -> Iterator[FileTreeNode]:
        """Depth-first, pre-order, children in insertion order."""
        stack = list(reversed(self._roots))
        while stack:
            node = stack.pop()
            yield node
            if node.children:
                stack.extend(reversed(node.children))

    def files(self) -> list[FileTreeNode]:
        return [n for n in self.walk() if n.is_file]

    def find_file(self, path: str) -> FileContent | None:
        """File-selection lookup by full path. Folders and unknown paths return None."""
        node = self._index.get(path.lstrip("/"))
        if node is None or not node.is_file:
            return None
        return FileContent(path=node.path, content=node.content or "", language=detect_language(node.path))

    def copy(self) -> "Forest":
        return Forest.from_nodes(self._roots)

    def to_nodes(self) -> list[FileTreeNode]:
        """Detached deep copy of the roots, for persistence and responses."""
        return [n.model_copy(deep=True) for n in self._roots]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Forest):
            return NotImplemented
        return [n.model_dump() for n in self._roots] == [n.model_dump() for n in other._roots]

    def __repr__(self) -> str:
        return f"Forest(nodes={len(self)})"
