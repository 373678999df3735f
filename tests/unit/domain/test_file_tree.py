"""Tests for Forest and file lookups."""

from src.domain.entities.file_tree import FileTreeNode, Forest, NodeKind, detect_language
from src.domain.entities.workspace_session import WorkspaceSession, make_title


def _sample() -> Forest:
    return Forest(
        [
            FileTreeNode(
                name="src",
                kind=NodeKind.FOLDER,
                path="src",
                children=[FileTreeNode(name="App.tsx", kind=NodeKind.FILE, path="src/App.tsx", content="x")],
            ),
            FileTreeNode(name="README.md", kind=NodeKind.FILE, path="README.md", content="# hi"),
        ]
    )


class TestForest:
    """Tests for Forest."""

    def test_walk_is_preorder(self):
        assert [n.path for n in _sample().walk()] == ["src", "src/App.tsx", "README.md"]

    def test_find_file(self):
        found = _sample().find_file("/src/App.tsx")
        assert found.path == "src/App.tsx"
        assert found.content == "x"
        assert found.language == "typescript"

    def test_find_file_misses(self):
        forest = _sample()
        assert forest.find_file("src") is None
        assert forest.find_file("nope.txt") is None

    def test_copy_is_independent(self):
        forest = _sample()
        copy = forest.copy()
        copy.get("src/App.tsx").content = "changed"
        assert forest.get("src/App.tsx").content == "x"

    def test_len_counts_all_nodes(self):
        assert len(_sample()) == 3


class TestHelpers:
    """Tests for language detection and titles."""

    def test_detect_language(self):
        assert detect_language("a/b.py") == "python"
        assert detect_language("Makefile") == "plaintext"

    def test_make_title(self):
        assert make_title("Build a todo app\nwith tags") == "Build a todo app"
        assert make_title("x" * 80) == "x" * 50
        assert make_title("   ") == "Untitled project"

    def test_session_round_trip(self):
        session = WorkspaceSession.new("Build a blog")
        session.forest = _sample().to_nodes()
        restored = WorkspaceSession.model_validate_json(session.model_dump_json())
        assert restored.as_forest() == _sample()
        assert restored.title == "Build a blog"
