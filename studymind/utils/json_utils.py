# Fichier : studymind/utils/json_utils.py

from __future__ import annotations

import json
from typing import Any, Optional


def _strip_code_fences(s: str) -> str:
    """Remove a surrounding ```...``` fence (with or without a language tag)."""
    s = s.strip()
    if not s.startswith("```"):
        return s

    nl = s.find("\n")
    inner = s[nl + 1 :] if nl != -1 else s[3:]
    end = inner.rfind("```")
    if end != -1:
        inner = inner[:end]
    return inner.strip()


def _extract_balanced_json(s: str) -> Optional[str]:
    """Return the first balanced JSON object or array in *s*, ignoring brackets inside strings."""
    start = next((i for i, ch in enumerate(s) if ch in "{["), None)
    if start is None:
        return None

    opener = s[start]
    closer = "}" if opener == "{" else "]"
    depth = 0
    in_string = False
    escape = False

    for i in range(start, len(s)):
        c = s[i]
        if escape:
            escape = False
            continue
        if c == "\\" and in_string:
            escape = True
            continue
        if c == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if c == opener:
            depth += 1
        elif c == closer:
            depth -= 1
            if depth == 0:
                return s[start : i + 1]
    return None


def safe_json_loads(raw: str | None) -> Any:
    """Parse model output that may be fenced or wrapped in prose.

    Tries a plain ``json.loads`` first, then the first balanced JSON block.
    Re-raises the original ``json.JSONDecodeError`` when both fail.
    """
    if raw is None:
        raise ValueError("safe_json_loads: input is None")

    text = _strip_code_fences(str(raw))
    try:
        return json.loads(text)
    except json.JSONDecodeError as first_exc:
        candidate = _extract_balanced_json(text)
        if candidate:
            return json.loads(candidate)
        raise first_exc
