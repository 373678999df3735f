"""Tests for the artifact parser."""

from src.domain.entities.steps import CreateFileStep, CreateFolderStep, RunScriptStep, StepStatus
from src.domain.services.artifact_parser import (
    contains_artifact,
    normalize_indentation,
    parse_artifact,
    parse_attributes,
    strip_code_fences,
)

DEMO = (
    '<boltArtifact id="x" title="Demo">'
    '<boltAction type="file" filePath="src/a.txt">  line1\n  line2</boltAction>'
    '<boltAction type="shell">npm install</boltAction>'
    "</boltArtifact>"
)


class TestParseArtifact:
    """Tests for parse_artifact."""

    def test_demo_artifact(self):
        """Folder step, file step with normalized code, shell step, in order."""
        steps = parse_artifact(DEMO)

        assert len(steps) == 3
        folder, file_step, script = steps
        assert isinstance(folder, CreateFolderStep)
        assert folder.id == 1
        assert folder.title == "Demo"
        assert folder.description == "Initialize project structure"
        assert isinstance(file_step, CreateFileStep)
        assert file_step.id == 2
        assert file_step.path == "src/a.txt"
        assert file_step.code == "line1\nline2"
        assert file_step.title == "Create src/a.txt"
        assert isinstance(script, RunScriptStep)
        assert script.id == 3
        assert script.code == "npm install"
        assert script.title == "Run Shell Command"
        assert all(s.status == StepStatus.PENDING for s in steps)

    def test_no_wrapper_returns_empty(self):
        """Plain prose yields no steps."""
        assert parse_artifact("Sure! Here is how you would do it.") == []
        assert parse_artifact("") == []

    def test_unclosed_wrapper_returns_empty(self):
        """A wrapper that never closes is not an artifact."""
        assert parse_artifact('<boltArtifact title="T"><boltAction type="shell">ls</boltAction>') == []

    def test_start_id_offsets_numbering(self):
        """Ids start at start_id and increase by one."""
        steps = parse_artifact(DEMO, start_id=7)
        assert [s.id for s in steps] == [7, 8, 9]

    def test_default_title(self):
        """Missing title attribute falls back to 'Project'."""
        steps = parse_artifact('<boltArtifact id="x"></boltArtifact>')
        assert len(steps) == 1
        assert steps[0].title == "Project"

    def test_attribute_order_and_newlines(self):
        """filePath before type, attributes split across lines, single quotes."""
        text = (
            "<boltArtifact title='T'>\n"
            "<boltAction\n  filePath='index.js'\n  type='file'>console.log(1)</boltAction>\n"
            "</boltArtifact>"
        )
        steps = parse_artifact(text)
        assert steps[1].path == "index.js"
        assert steps[1].code == "console.log(1)"

    def test_code_fences_stripped(self):
        """Markdown fences around and inside the artifact are ignored."""
        text = "Here you go:\n```xml\n" + DEMO.replace("line1", "```tsx\nline1") + "\n```"
        steps = parse_artifact(text)
        assert len(steps) == 3
        assert "```" not in steps[1].code

    def test_file_without_path_is_skipped(self):
        """A file action without filePath misses only that block."""
        text = (
            '<boltArtifact title="T">'
            '<boltAction type="file">orphan</boltAction>'
            '<boltAction type="file" filePath="b.txt">B</boltAction>'
            "</boltArtifact>"
        )
        steps = parse_artifact(text)
        assert [getattr(s, "path", None) for s in steps[1:]] == ["b.txt"]
        assert steps[1].id == 2

    def test_unknown_type_is_skipped(self):
        """Unknown action types do not produce steps."""
        text = (
            '<boltArtifact title="T">'
            '<boltAction type="deploy">now</boltAction>'
            '<boltAction type="shell">npm test</boltAction>'
            "</boltArtifact>"
        )
        steps = parse_artifact(text)
        assert len(steps) == 2
        assert isinstance(steps[1], RunScriptStep)

    def test_unterminated_action_keeps_siblings(self):
        """A block that never closes is skipped; the next block is still read."""
        text = (
            '<boltArtifact title="T">'
            '<boltAction type="file" filePath="broken.txt">no end here'
            '<boltAction type="file" filePath="ok.txt">fine</boltAction>'
            "</boltArtifact>"
        )
        steps = parse_artifact(text)
        paths = [s.path for s in steps if isinstance(s, CreateFileStep)]
        assert paths == ["ok.txt"]

    def test_greater_than_inside_attribute(self):
        """Quoted '>' does not end the start tag."""
        text = '<boltArtifact title="a > b"><boltAction type="shell">echo hi</boltAction></boltArtifact>'
        steps = parse_artifact(text)
        assert steps[0].title == "a > b"
        assert steps[1].code == "echo hi"

    def test_only_first_wrapper_is_read(self):
        """Second artifact in the same response is ignored."""
        text = DEMO + '<boltArtifact title="Second"><boltAction type="shell">ls</boltAction></boltArtifact>'
        steps = parse_artifact(text)
        assert steps[0].title == "Demo"
        assert len(steps) == 3

    def test_never_raises_on_garbage(self):
        """Arbitrary markup fragments parse without exceptions."""
        for text in ("<boltArtifact", "<boltArtifact title=\"x", "<<<>>>", "</boltAction></boltArtifact>"):
            assert isinstance(parse_artifact(text), list)


class TestNormalizeIndentation:
    """Tests for normalize_indentation."""

    def test_strips_first_line_indent(self):
        assert normalize_indentation("    a\n      b\n    c") == "a\n  b\nc"

    def test_trims_blank_edges(self):
        assert normalize_indentation("\n\n  x\n  y\n\n") == "x\ny"

    def test_less_indented_lines_lose_shared_prefix_only(self):
        """Lines indented less than the first line keep their remaining text."""
        assert normalize_indentation("    a\n  b\nc") == "a\nb\nc"

    def test_no_indent_is_unchanged(self):
        assert normalize_indentation("a\n  b") == "a\n  b"

    def test_crlf(self):
        assert normalize_indentation("  a\r\n  b") == "a\nb"

    def test_empty(self):
        assert normalize_indentation("   \n  ") == ""


class TestHelpers:
    """Tests for fence stripping, attributes and detection."""

    def test_strip_code_fences(self):
        assert strip_code_fences("```typescript\nconst a = 1;\n```") == "\nconst a = 1;\n"

    def test_parse_attributes(self):
        assert parse_attributes(' type="file" filePath=\'a/b.ts\' ') == {"type": "file", "filePath": "a/b.ts"}

    def test_contains_artifact(self):
        assert contains_artifact(DEMO)
        assert not contains_artifact("no markup")
