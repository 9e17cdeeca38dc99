# learnpath/agents/parsing.py
import re


def extract_first_json_object(text: str | None) -> str | None:
    """
    Extract the first complete top-level JSON object using brace counting.
    Braces inside JSON strings are skipped.
    Returns the first balanced { ... } substring, or None if not found.
    """
    if not text:
        return None

    start = text.find("{")
    if start == -1:
        return None

    brace_count = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            brace_count += 1
        elif ch == "}":
            brace_count -= 1
            if brace_count == 0:
                return text[start:i + 1]

    return None


_TAG_RE = re.compile(r"<[^>]*>")
_SPACE_RE = re.compile(r"\s+")


def clean_text(text: str, limit: int | None = None) -> str:
    """Strip HTML tags and collapse whitespace, optionally truncating."""
    cleaned = _SPACE_RE.sub(" ", _TAG_RE.sub(" ", text or "")).strip()
    if limit is not None:
        cleaned = cleaned[:limit]
    return cleaned


def bullet_list(items: list[dict]) -> str:
    """Render nodes as '- title: description' lines for prompts."""
    lines = []
    for item in items:
        description = item.get("description")
        line = f"- {item['title']}"
        if description:
            line += f": {description}"
        lines.append(line)
    return "\n".join(lines)
