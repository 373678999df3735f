"""Artifact parser - extracts build steps from a completion backend response.

Expected format (anywhere in the response, optionally inside markdown fences):

    <boltArtifact id="todo-app" title="Todo App">
      <boltAction type="file" filePath="src/App.tsx">
        ...file content...
      </boltAction>
      <boltAction type="shell">
        npm install
      </boltAction>
    </boltArtifact>

Parsing never raises. A response without a complete wrapper block yields no
steps; a malformed action block is skipped and its siblings are still read.
"""

import logging
import re

from src.domain.entities.steps import CreateFileStep, CreateFolderStep, RunScriptStep, Step

logger = logging.getLogger(__name__)

ARTIFACT_TAG = "boltArtifact"
ACTION_TAG = "boltAction"
DEFAULT_TITLE = "Project"

# Fence delimiter plus an optional language tag: ```xml, ```tsx, ```
_FENCE_RE = re.compile(r"```[A-Za-z0-9_+.-]*")
_ATTR_RE = re.compile(r"""([A-Za-z_:][\w:.-]*)\s*=\s*(?:"([^"]*)"|'([^']*)')""")


def strip_code_fences(text: str) -> str:
    """Remove markdown fence delimiters and their language tags."""
    return _FENCE_RE.sub("", text)


def normalize_indentation(code: str) -> str:
    """Strip the first line's leading whitespace from every line.

    Leading and trailing blank lines are dropped first. Lines indented less
    than the first line lose only the whitespace they share with it.
    """
    lines = code.replace("\r\n", "\n").split("\n")
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    if not lines:
        return ""

    first = lines[0]
    indent = first[: len(first) - len(first.lstrip())]
    if not indent:
        return "\n".join(lines)

    out = []
    for line in lines:
        n = 0
        limit = min(len(indent), len(line))
        while n < limit and line[n] == indent[n]:
            n += 1
        out.append(line[n:])
    return "\n".join(out)


def parse_attributes(raw: str) -> dict[str, str]:
    """Parse name="value" / name='value' pairs in any order."""
    return {m.group(1): m.group(2) if m.group(2) is not None else m.group(3) for m in _ATTR_RE.finditer(raw)}


def _find_tag_end(text: str, pos: int) -> int:
    """Index of the '>' closing a start tag, skipping quoted attribute values. -1 if none."""
    quote: str | None = None
    for i in range(pos, len(text)):
        ch = text[i]
        if quote:
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif ch == ">":
            return i
    return -1


def _find_open_tag(text: str, tag: str, start: int) -> tuple[int, int, str] | None:
    """Find the next `<tag ...>` at or after start.

    Returns (tag_start, body_start, raw_attributes) or None. `<tagFoo` does not
    match `<tag`.
    """
    needle = "<" + tag
    pos = start
    while True:
        idx = text.find(needle, pos)
        if idx == -1:
            return None
        after = idx + len(needle)
        if after < len(text) and (text[after] == ">" or text[after] == "/" or text[after].isspace()):
            end = _find_tag_end(text, after)
            if end == -1:
                return None
            return idx, end + 1, text[after:end]
        pos = after


def _extract_wrapper(text: str) -> tuple[dict[str, str], str] | None:
    """First wrapper block: (attributes, inner content). None if absent or unclosed."""
    opened = _find_open_tag(text, ARTIFACT_TAG, 0)
    if opened is None:
        return None
    _, body_start, raw_attrs = opened
    close = text.find(f"</{ARTIFACT_TAG}>", body_start)
    if close == -1:
        logger.debug("Artifact wrapper is not closed, ignoring response")
        return None
    return parse_attributes(raw_attrs), text[body_start:close]


def _iter_actions(inner: str):
    """Yield (attributes, body) for each well-formed action block, in order."""
    close_tag = f"</{ACTION_TAG}>"
    pos = 0
    while True:
        opened = _find_open_tag(inner, ACTION_TAG, pos)
        if opened is None:
            return
        tag_start, body_start, raw_attrs = opened
        attrs = parse_attributes(raw_attrs)

        if raw_attrs.rstrip().endswith("/"):
            yield attrs, ""
            pos = body_start
            continue

        close = inner.find(close_tag, body_start)
        following = _find_open_tag(inner, ACTION_TAG, body_start)
        if close == -1:
            if following is None:
                logger.debug("Unterminated action block at offset %d, skipping", tag_start)
                return
            pos = following[0]
            continue
        if following is not None and following[0] < close:
            # This block never closes before the next one opens.
            logger.debug("Unterminated action block at offset %d, skipping", tag_start)
            pos = following[0]
            continue

        yield attrs, inner[body_start:close]
        pos = close + len(close_tag)


def parse_artifact(response: str, start_id: int = 1) -> list[Step]:
    """Parse a backend response into ordered steps.

    Args:
        response: Raw text from the completion backend.
        start_id: Id of the first emitted step (ids increase by one).

    Returns:
        Steps in document order: a leading CreateFolder step named after the
        artifact title, then one CreateFile / RunScript step per action.
        Empty list when the response has no complete artifact.

    """
    if not response:
        return []

    wrapper = _extract_wrapper(strip_code_fences(response))
    if wrapper is None:
        return []
    attrs, inner = wrapper

    step_id = start_id
    steps: list[Step] = [
        CreateFolderStep(
            id=step_id,
            title=attrs.get("title") or DEFAULT_TITLE,
            description="Initialize project structure",
        )
    ]
    step_id += 1

    for action, body in _iter_actions(inner):
        kind = action.get("type", "").strip().lower()
        if kind == "file":
            path = (action.get("filePath") or "").strip()
            if not path:
                logger.debug("File action without filePath, skipping")
                continue
            steps.append(
                CreateFileStep(
                    id=step_id,
                    title=f"Create {path}",
                    path=path,
                    code=normalize_indentation(body),
                )
            )
        elif kind == "shell":
            steps.append(RunScriptStep(id=step_id, title="Run Shell Command", code=body.strip()))
        else:
            logger.debug("Unknown action type %r, skipping", kind)
            continue
        step_id += 1

    return steps


def contains_artifact(response: str) -> bool:
    """Cheap check used to warn about responses without artifact markup."""
    return f"<{ARTIFACT_TAG}" in response or f"<{ACTION_TAG}" in response
