"""Parser for reasoning models (DeepSeek-R1, QwQ): separates <think> blocks from content."""

THINK_OPEN = "<think>"
THINK_CLOSE = "</think>"


def split_reasoning(text: str) -> tuple[str, str]:
    """Split a full response into (thinking, content).

    Thinking blocks are removed from the content so that artifact markup
    quoted while reasoning is never parsed. An unclosed <think> swallows the
    rest of the text.
    """
    thinking: list[str] = []
    content: list[str] = []
    i = 0
    while i < len(text):
        start = text.find(THINK_OPEN, i)
        if start == -1:
            content.append(text[i:])
            break
        content.append(text[i:start])
        end = text.find(THINK_CLOSE, start + len(THINK_OPEN))
        if end == -1:
            thinking.append(text[start + len(THINK_OPEN) :])
            break
        thinking.append(text[start + len(THINK_OPEN) : end])
        i = end + len(THINK_CLOSE)
    return "\n".join(t.strip() for t in thinking if t.strip()), "".join(content).strip()
