"""Tests for project archive export."""

import io
import zipfile

from src.domain.entities.file_tree import Forest
from src.domain.entities.steps import CreateFileStep
from src.domain.services.tree_builder import fold_steps
from src.infrastructure.services.archive_service import EMPTY_README, archive_filename, build_archive


def _forest(files: dict[str, str]) -> Forest:
    steps = [CreateFileStep(id=i, title=p, path=p, code=c) for i, (p, c) in enumerate(files.items(), start=1)]
    return fold_steps(Forest(), steps).forest


def _entries(data: bytes) -> dict[str, str]:
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return {name: zf.read(name).decode("utf-8") for name in zf.namelist()}


class TestBuildArchive:
    def test_files_under_full_paths(self):
        data = build_archive(_forest({"package.json": "{}", "src/App.tsx": "app", "src/ui/Button.tsx": "btn"}))
        assert _entries(data) == {"package.json": "{}", "src/App.tsx": "app", "src/ui/Button.tsx": "btn"}

    def test_empty_forest_gets_readme(self):
        assert _entries(build_archive(Forest())) == {"README.md": EMPTY_README}


class TestArchiveFilename:
    def test_slug(self):
        assert archive_filename("Todo App: dark mode!") == "todo-app-dark-mode.zip"

    def test_fallback(self):
        assert archive_filename("???") == "project.zip"
