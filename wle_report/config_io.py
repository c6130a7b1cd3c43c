from __future__ import annotations

from pathlib import Path
from typing import Any


def load_simple_yaml(path: str | Path) -> dict[str, Any]:
    """
    Load the small YAML subset used by the files under configs/.

    Supported:
      - mappings via `key: value`
      - nested mappings via 2-space indentation
      - inline lists (`[a, b]`) and block lists (`- item` under a `key:`)
      - strings (quoted or unquoted), numbers, booleans, null
      - `#` comments (outside quotes) and blank lines

    Not supported: anchors, multi-line strings, lists of mappings.
    """
    p = Path(path)
    text = p.read_text(encoding="utf-8")

    root: dict[str, Any] = {}
    # (indent, container, parent mapping, key in parent)
    stack: list[tuple[int, Any, dict[str, Any] | None, str | None]] = [(-1, root, None, None)]

    for raw_line in text.splitlines():
        line = _strip_comment(raw_line).rstrip()
        if not line.strip():
            continue

        indent = len(line) - len(line.lstrip(" "))
        if indent % 2 != 0:
            raise ValueError(f"Unsupported indentation (must be multiple of 2): {raw_line!r}")

        while len(stack) > 1 and indent <= stack[-1][0]:
            stack.pop()

        body = line.lstrip()
        current_indent, current, parent, parent_key = stack[-1]

        if body == "-" or body.startswith("- "):
            if isinstance(current, dict):
                # First list item under an empty `key:` turns the placeholder into a list.
                if current or parent is None or parent_key is None:
                    raise ValueError(f"List item outside of a list: {raw_line!r}")
                current = []
                parent[parent_key] = current
                stack[-1] = (current_indent, current, parent, parent_key)
            current.append(_parse_scalar(body[1:].strip()))
            continue

        if not isinstance(current, dict):
            raise ValueError(f"Mapping entry inside a list: {raw_line!r}")
        if ":" not in body:
            raise ValueError(f"Invalid YAML mapping line: {raw_line!r}")

        key, value = body.split(":", 1)
        key = key.strip()
        value = value.strip()

        if value == "":
            child: dict[str, Any] = {}
            current[key] = child
            stack.append((indent, child, current, key))
            continue

        current[key] = _parse_scalar(value)

    return root


def _strip_comment(line: str) -> str:
    quote = None
    for i, ch in enumerate(line):
        if quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "#" and (i == 0 or line[i - 1] in " \t"):
            return line[:i]
    return line


def _split_inline_list(inner: str) -> list[str]:
    parts: list[str] = []
    buf: list[str] = []
    quote = None
    for ch in inner:
        if quote:
            buf.append(ch)
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
            buf.append(ch)
        elif ch == ",":
            parts.append("".join(buf).strip())
            buf = []
        else:
            buf.append(ch)
    parts.append("".join(buf).strip())
    return parts


def _parse_scalar(value: str) -> Any:
    v = value.strip()
    if v.startswith("[") and v.endswith("]"):
        inner = v[1:-1].strip()
        if not inner:
            return []
        return [_parse_scalar(p) for p in _split_inline_list(inner) if p]
    if len(v) >= 2 and ((v.startswith("'") and v.endswith("'")) or (v.startswith('"') and v.endswith('"'))):
        return v[1:-1]

    lower = v.lower()
    if lower in {"true", "yes"}:
        return True
    if lower in {"false", "no"}:
        return False
    if lower in {"null", "none", "~"}:
        return None

    try:
        if "." in v or "e" in lower:
            return float(v)
        return int(v)
    except ValueError:
        return v
