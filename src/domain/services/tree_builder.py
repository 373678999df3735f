"""Tree builder - folds pending build steps into the project forest."""

import logging
from dataclasses import dataclass, field
from typing import assert_never

from src.domain.entities.file_tree import FileTreeNode, Forest, NodeKind
from src.domain.entities.steps import (
    CreateFileStep,
    CreateFolderStep,
    DeleteFileStep,
    EditFileStep,
    RunScriptStep,
    Step,
    StepStatus,
)

logger = logging.getLogger(__name__)


@dataclass
class FoldResult:
    """Outcome of one fold: new forest, steps with updated status, touched file paths."""

    forest: Forest
    steps: list[Step]
    changed_paths: list[str] = field(default_factory=list)


def normalize_path(raw: str) -> str | None:
    """Project-relative path without leading '/', './' or empty segments.

    Returns None for paths that escape the project root or are empty.
    """
    parts: list[str] = []
    for segment in raw.replace("\\", "/").split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            return None
        parts.append(segment)
    return "/".join(parts) or None


def _folder_prefixes(path: str) -> list[str]:
    segments = path.split("/")
    return ["/".join(segments[: i + 1]) for i in range(len(segments) - 1)]


def _create_file(forest: Forest, path: str, code: str) -> bool:
    """Create or overwrite the file at path. Returns True if the forest changed."""
    prefixes = _folder_prefixes(path)
    for prefix in prefixes:
        node = forest.get(prefix)
        if node is not None and node.is_file:
            logger.warning("Skipping %s: %s is a file, not a folder", path, prefix)
            return False
    existing = forest.get(path)
    if existing is not None and not existing.is_file:
        logger.warning("Skipping %s: path is a folder", path)
        return False

    parent: FileTreeNode | None = None
    for prefix in prefixes:
        folder = forest.get(prefix)
        if folder is None:
            folder = forest.add_node(
                parent,
                FileTreeNode(
                    name=prefix.rsplit("/", 1)[-1],
                    kind=NodeKind.FOLDER,
                    path=prefix,
                    children=[],
                ),
            )
        parent = folder

    if existing is None:
        forest.add_node(
            parent,
            FileTreeNode(name=path.rsplit("/", 1)[-1], kind=NodeKind.FILE, path=path, content=code),
        )
        return True
    if existing.content == code:
        return False
    # Latest write wins, no history kept.
    existing.content = code
    return True


def fold_steps(forest: Forest, steps: list[Step]) -> FoldResult:
    """Fold every pending step, in order, into a copy of forest.

    Each folded step is marked completed whether or not it changed the tree.
    Steps that are not pending are passed through untouched. The input forest
    and step objects are never modified.
    """
    result = FoldResult(forest=forest.copy(), steps=[])
    for step in steps:
        if step.status != StepStatus.PENDING:
            result.steps.append(step)
            continue

        if isinstance(step, CreateFileStep):
            path = normalize_path(step.path)
            if path is None:
                logger.warning("Skipping step %d: invalid file path %r", step.id, step.path)
            elif _create_file(result.forest, path, step.code):
                result.changed_paths.append(path)
        elif isinstance(step, (CreateFolderStep, EditFileStep, DeleteFileStep, RunScriptStep)):
            # No tree effect; RunScript is consumed by the execution runtime.
            pass
        else:
            assert_never(step)

        result.steps.append(step.model_copy(update={"status": StepStatus.COMPLETED}))

    if result.changed_paths:
        logger.debug("Fold touched %d file(s)", len(result.changed_paths))
    return result
