"""Mount projector - forest to the nested descriptor an execution runtime mounts.

Descriptor shape (keyed by node name):

    {
        "package.json": {"file": {"contents": "..."}},
        "src": {"directory": {"main.tsx": {"file": {"contents": "..."}}}},
        "public": {"directory": {}},
    }
"""

from typing import Any

from src.domain.entities.file_tree import FileTreeNode, Forest, NodeKind
from src.domain.errors import MountProjectionError

MountDescriptor = dict[str, Any]


def _project(nodes: list[FileTreeNode], parent_path: str) -> MountDescriptor:
    entries: MountDescriptor = {}
    for node in nodes:
        expected = f"{parent_path}/{node.name}" if parent_path else node.name
        if not node.name or "/" in node.name:
            raise MountProjectionError(f"Invalid node name {node.name!r} under {parent_path or '/'}")
        if node.path != expected:
            raise MountProjectionError(f"Node path {node.path!r} does not match its position {expected!r}")
        if node.name in entries:
            raise MountProjectionError(f"Duplicate sibling {expected!r}")
        if node.kind == NodeKind.FILE:
            if node.children:
                raise MountProjectionError(f"File {expected!r} has children")
            entries[node.name] = {"file": {"contents": node.content or ""}}
        else:
            # Empty folders still materialize so commands can rely on them.
            entries[node.name] = {"directory": _project(node.children or [], expected)}
    return entries


def project_mount(forest: Forest) -> MountDescriptor:
    """Project the whole forest. Recomputed from scratch on every call.

    Raises:
        MountProjectionError: The forest breaks a tree invariant (a builder defect).

    """
    return _project(forest.roots, "")


def _rebuild(entries: MountDescriptor, parent_path: str) -> list[FileTreeNode]:
    nodes: list[FileTreeNode] = []
    for name, entry in entries.items():
        path = f"{parent_path}/{name}" if parent_path else name
        if "file" in entry:
            nodes.append(
                FileTreeNode(name=name, kind=NodeKind.FILE, path=path, content=entry["file"].get("contents", ""))
            )
        elif "directory" in entry:
            nodes.append(
                FileTreeNode(
                    name=name,
                    kind=NodeKind.FOLDER,
                    path=path,
                    children=_rebuild(entry["directory"], path),
                )
            )
        else:
            raise MountProjectionError(f"Unknown descriptor entry at {path!r}")
    return nodes


def forest_from_mount(descriptor: MountDescriptor) -> Forest:
    """Reconstruct a forest from a descriptor (inverse of project_mount)."""
    return Forest(_rebuild(descriptor, ""))
