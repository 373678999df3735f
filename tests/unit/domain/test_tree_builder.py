"""Tests for the incremental file-tree builder."""

from src.domain.entities.file_tree import FileTreeNode, Forest, NodeKind
from src.domain.entities.steps import (
    CreateFileStep,
    CreateFolderStep,
    DeleteFileStep,
    EditFileStep,
    RunScriptStep,
    StepStatus,
)
from src.domain.services.tree_builder import fold_steps, normalize_path


def _file(step_id: int, path: str, code: str) -> CreateFileStep:
    return CreateFileStep(id=step_id, title=f"Create {path}", path=path, code=code)


def _paths(forest: Forest) -> list[str]:
    return [n.path for n in forest.walk()]


class TestFoldSteps:
    """Tests for fold_steps."""

    def test_creates_nested_folders_and_file(self):
        """Folders along the path are created once, file attached to the deepest."""
        result = fold_steps(Forest(), [_file(1, "src/components/App.tsx", "x")])

        assert _paths(result.forest) == ["src", "src/components", "src/components/App.tsx"]
        src = result.forest.get("src")
        assert src.kind == NodeKind.FOLDER
        assert src.children[0].name == "components"
        assert result.forest.get("src/components/App.tsx").content == "x"
        assert result.changed_paths == ["src/components/App.tsx"]

    def test_all_pending_steps_marked_completed(self):
        """Every folded step is completed, with or without a tree effect."""
        steps = [
            CreateFolderStep(id=1, title="Demo"),
            _file(2, "a.txt", "A"),
            RunScriptStep(id=3, title="Run Shell Command", code="npm install"),
            EditFileStep(id=4, title="Edit", path="a.txt", code="ignored"),
            DeleteFileStep(id=5, title="Delete", path="a.txt"),
        ]
        result = fold_steps(Forest(), steps)

        assert [s.status for s in result.steps] == [StepStatus.COMPLETED] * 5
        assert result.forest.get("a.txt").content == "A"

    def test_input_not_mutated(self):
        """The input forest and steps are left as they were."""
        forest = Forest()
        steps = [_file(1, "a.txt", "A")]
        fold_steps(forest, steps)

        assert forest.is_empty()
        assert steps[0].status == StepStatus.PENDING

    def test_idempotent_fold(self):
        """Folding an already-completed batch again changes nothing."""
        first = fold_steps(Forest(), [_file(1, "src/a.txt", "A"), _file(2, "b.txt", "B")])
        second = fold_steps(first.forest, first.steps)

        assert second.forest == first.forest
        assert second.changed_paths == []
        assert second.steps == first.steps

    def test_overwrite_across_rounds(self):
        """Round 1 writes X, round 2 writes Y: one node, latest content."""
        round1 = fold_steps(Forest(), [_file(1, "src/a.txt", "X")])
        round2 = fold_steps(round1.forest, [_file(2, "src/a.txt", "Y")])

        files = round2.forest.files()
        assert [f.path for f in files] == ["src/a.txt"]
        assert files[0].content == "Y"
        assert round1.forest.get("src/a.txt").content == "X"

    def test_paths_unique(self):
        """Repeated folders and files never produce duplicate paths."""
        steps = [
            _file(1, "src/a.ts", "1"),
            _file(2, "/src/b.ts", "2"),
            _file(3, "./src//a.ts", "3"),
            _file(4, "src/lib/c.ts", "4"),
        ]
        result = fold_steps(Forest(), steps)
        paths = _paths(result.forest)

        assert len(paths) == len(set(paths))
        assert sorted(paths) == ["src", "src/a.ts", "src/b.ts", "src/lib", "src/lib/c.ts"]
        assert result.forest.get("src/a.ts").content == "3"

    def test_order_independent_for_disjoint_subtrees(self):
        """Folding disjoint subtrees in either order gives the same files."""
        a = [_file(1, "api/x.js", "x"), _file(2, "api/y.js", "y")]
        b = [_file(3, "web/z.js", "z")]
        left = fold_steps(Forest(), a + b).forest
        right = fold_steps(Forest(), b + a).forest

        def contents(forest: Forest) -> dict[str, str]:
            return {n.path: n.content for n in forest.files()}

        assert contents(left) == contents(right)

    def test_kind_conflict_is_skipped(self):
        """A file where a folder is needed (and vice versa) is skipped."""
        result = fold_steps(
            Forest(),
            [_file(1, "src", "i am a file"), _file(2, "src/a.txt", "A"), _file(3, "lib/x.js", "x"), _file(4, "lib", "")],
        )

        assert result.forest.get("src").kind == NodeKind.FILE
        assert result.forest.get("src/a.txt") is None
        assert result.forest.get("lib").kind == NodeKind.FOLDER
        assert all(s.status == StepStatus.COMPLETED for s in result.steps)

    def test_parent_escape_rejected(self):
        """Paths with '..' are rejected but the step is still completed."""
        result = fold_steps(Forest(), [_file(1, "../etc/passwd", "x")])

        assert result.forest.is_empty()
        assert result.steps[0].status == StepStatus.COMPLETED

    def test_non_pending_steps_pass_through(self):
        """Completed steps are not re-applied."""
        done = _file(1, "a.txt", "A").model_copy(update={"status": StepStatus.COMPLETED})
        result = fold_steps(Forest(), [done])

        assert result.forest.is_empty()
        assert result.steps == [done]

    def test_existing_forest_extended(self):
        """New files join folders restored from a stored session."""
        restored = Forest.from_nodes(
            [
                FileTreeNode(
                    name="src",
                    kind=NodeKind.FOLDER,
                    path="src",
                    children=[FileTreeNode(name="a.txt", kind=NodeKind.FILE, path="src/a.txt", content="A")],
                )
            ]
        )
        result = fold_steps(restored, [_file(5, "src/b.txt", "B")])

        assert [c.name for c in result.forest.get("src").children] == ["a.txt", "b.txt"]


class TestNormalizePath:
    """Tests for normalize_path."""

    def test_leading_slash_and_dot(self):
        assert normalize_path("/src/a.ts") == "src/a.ts"
        assert normalize_path("./src/a.ts") == "src/a.ts"

    def test_empty_segments_collapsed(self):
        assert normalize_path("src//lib///a.ts") == "src/lib/a.ts"

    def test_backslashes(self):
        assert normalize_path("src\\a.ts") == "src/a.ts"

    def test_rejects_parent_and_empty(self):
        assert normalize_path("src/../a.ts") is None
        assert normalize_path("/") is None
        assert normalize_path("") is None
