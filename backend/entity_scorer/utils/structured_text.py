"""Line-oriented structured-text codec for persisted documents.

A document looks like::

    {# Entity Registry
    ## Person
    Marcus: confidence=0.85, occurrences=3

    ## Dialogue Verbs
    - said
    - replied

    ## Relationships
    | Subject | Relation | Object |
    |---------|----------|--------|
    | Marcus  | trusts   | Elena  |

    ## Metadata
    Last Update: 12
    }

Parsing never raises: missing or malformed text yields an empty document.
Section names are snake_cased; only metadata keys are snake_cased, data keys
(entity names, words) are kept as written.
"""

from __future__ import annotations

import re
from typing import Any

from entity_scorer.models.document import Document, Ratio

_HEADER_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)
_SECTION_RE = re.compile(r"^##\s+(.+)$")
_KEY_VALUE_RE = re.compile(r"^([^:]+):\s*(.+)$")
_BULLET_RE = re.compile(r"^[-•*]\s+(.+)$")
_NUMBERED_RE = re.compile(r"^\d+\.\s+(.+)$")
_COMMENT_RE = re.compile(r"(?:^|\s)//.*$")
_INT_RE = re.compile(r"^-?\d+$")
_FLOAT_RE = re.compile(r"^-?\d+\.\d+$")
_PERCENT_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*%$")
_RATIO_RE = re.compile(r"^(\d+)\s*/\s*(\d+)$")
_TABLE_SEPARATOR_RE = re.compile(r"^\|[\s\-|:]+\|$")

METADATA_SECTION = "metadata"


def to_snake_case(text: str) -> str:
    return re.sub(r"[\s\-]+", "_", text.strip()).strip("_").lower()


def to_title_case(key: str) -> str:
    return " ".join(part.capitalize() for part in key.replace("_", " ").split())


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


def parse_value(value: str) -> Any:
    """Auto-type a scalar: booleans, integers, decimals, ``a/b``, ``N%``."""
    if not isinstance(value, str):
        return value
    value = value.strip()
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if _INT_RE.match(value):
        return int(value)
    if _FLOAT_RE.match(value):
        return float(value)
    m = _PERCENT_RE.match(value)
    if m:
        return float(m.group(1)) / 100
    m = _RATIO_RE.match(value)
    if m:
        return Ratio(int(m.group(1)), int(m.group(2)))
    return value


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Ratio):
        return f"{value.current}/{value.max}"
    if isinstance(value, float):
        if value.is_integer():
            return f"{value:.1f}"
        return repr(round(value, 4))
    return str(value)


def parse_fields(value: Any) -> dict[str, Any]:
    """Parse ``confidence=0.8, occurrences=5`` into a typed dict."""
    if not isinstance(value, str):
        return {}
    fields: dict[str, Any] = {}
    for part in value.split(","):
        if "=" not in part:
            continue
        key, raw = part.split("=", 1)
        key = key.strip()
        if key:
            fields[key] = parse_value(raw.strip())
    return fields


def format_fields(fields: dict[str, Any]) -> str:
    parts = []
    for key, value in fields.items():
        if value is None:
            continue
        if isinstance(value, float) and not isinstance(value, bool):
            parts.append(f"{key}={value:.2f}")
        else:
            parts.append(f"{key}={format_value(value)}")
    return ", ".join(parts)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_document(text: str | None) -> Document:
    if not text or not isinstance(text, str):
        return Document()
    text = text.strip()
    if not (text.startswith("{") and text.endswith("}")):
        if "##" in text:
            return Document(sections=parse_sections(text))
        pairs = parse_key_values(text)
        return Document(sections={"default": pairs} if pairs else {})

    content = text[1:-1].strip()
    m = _HEADER_RE.search(content)
    if not m:
        return Document(sections=parse_sections(content))
    body = content[m.end():]
    return Document(name=m.group(1).strip(), sections=parse_sections(body))


def _remove_comments(text: str) -> str:
    return "\n".join(_COMMENT_RE.sub("", line).rstrip() for line in text.split("\n"))


def parse_sections(text: str) -> dict[str, Any]:
    sections: dict[str, Any] = {}
    if not text:
        return sections

    current = "default"
    buffer: list[str] = []

    def _flush() -> None:
        content = "\n".join(buffer).strip()
        if content:
            key = to_snake_case(current)
            sections[key] = parse_section_content(content, snake_keys=key == METADATA_SECTION)

    for line in _remove_comments(text).split("\n"):
        m = _SECTION_RE.match(line.strip())
        if m:
            _flush()
            current = m.group(1).strip()
            buffer = []
        else:
            buffer.append(line)
    _flush()
    return sections


def parse_section_content(content: str, snake_keys: bool = False) -> Any:
    if _is_list(content):
        return parse_list(content)
    if _is_table(content):
        return parse_table(content)
    return parse_key_values(content, snake_keys=snake_keys)


def parse_key_values(text: str, snake_keys: bool = False) -> dict[str, Any]:
    pairs: dict[str, Any] = {}
    for line in text.split("\n"):
        m = _KEY_VALUE_RE.match(line.strip())
        if not m:
            continue
        key = m.group(1).strip()
        if snake_keys:
            key = to_snake_case(key)
        pairs[key] = parse_value(m.group(2))
    return pairs


def parse_list(text: str) -> list[str]:
    items: list[str] = []
    for line in text.split("\n"):
        trimmed = line.strip()
        m = _BULLET_RE.match(trimmed) or _NUMBERED_RE.match(trimmed)
        if m:
            items.append(m.group(1).strip())
    return items


def parse_table(text: str) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    headers: list[str] | None = None
    for line in text.split("\n"):
        trimmed = line.strip()
        if not (trimmed.startswith("|") and trimmed.endswith("|") and len(trimmed) > 1):
            if headers is not None:
                break
            continue
        if _TABLE_SEPARATOR_RE.match(trimmed):
            continue
        cells = [cell.strip() for cell in trimmed[1:-1].split("|")]
        if headers is None:
            headers = [to_snake_case(h) for h in cells]
            continue
        rows.append({
            header: parse_value(cells[i]) if i < len(cells) else ""
            for i, header in enumerate(headers)
        })
    return rows


def _is_list(text: str) -> bool:
    lines = [line.strip() for line in text.strip().split("\n") if line.strip()]
    return bool(lines) and all(
        _BULLET_RE.match(line) or _NUMBERED_RE.match(line) for line in lines
    )


def _is_table(text: str) -> bool:
    lines = text.strip().split("\n")
    first = lines[0].strip()
    return len(lines) >= 2 and first.startswith("|") and first.endswith("|")


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def format_document(doc: Document) -> str:
    lines = [f"{{# {doc.name or 'Unknown'}"]
    for key, content in doc.sections.items():
        body = format_section_content(content, snake_keys=key == METADATA_SECTION)
        if not body:
            continue
        lines.append("")
        lines.append(f"## {to_title_case(key)}")
        lines.append(body)
    lines.append("}")
    return "\n".join(lines)


def format_section_content(content: Any, snake_keys: bool = False) -> str:
    if isinstance(content, list):
        if content and all(isinstance(row, dict) for row in content):
            return format_table(content)
        return format_list([item for item in content if not isinstance(item, dict)])
    if isinstance(content, dict):
        return format_key_values(content, snake_keys=snake_keys)
    return format_value(content)


def format_key_values(pairs: dict[str, Any], snake_keys: bool = False) -> str:
    out = []
    for key, value in pairs.items():
        label = to_title_case(key) if snake_keys else key
        rendered = format_value(value)
        if rendered == "":
            continue
        out.append(f"{label}: {rendered}")
    return "\n".join(out)


def format_list(items: list[Any]) -> str:
    return "\n".join(f"- {format_value(item)}" for item in items)


def format_table(rows: list[dict[str, Any]]) -> str:
    if not rows:
        return ""
    headers = list(rows[0].keys())
    titles = [to_title_case(h) for h in headers]
    cells = [[format_value(row.get(h, "")) for h in headers] for row in rows]
    widths = [
        max(len(titles[i]), *(len(r[i]) for r in cells))
        for i in range(len(headers))
    ]
    lines = ["| " + " | ".join(t.ljust(widths[i]) for i, t in enumerate(titles)) + " |"]
    lines.append("|" + "|".join("-" * (w + 2) for w in widths) + "|")
    for r in cells:
        lines.append("| " + " | ".join(c.ljust(widths[i]) for i, c in enumerate(r)) + " |")
    return "\n".join(lines)
