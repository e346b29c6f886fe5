from __future__ import annotations

import json
import re
from typing import Any, List, Optional

# ```json / ```JSON / ``` at the start, bare ``` at the end
_FENCE_OPEN_RE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\r?\n?")
_FENCE_CLOSE_RE = re.compile(r"\r?\n?```$")


def _reject_constant(name: str) -> Any:
    # json.loads accepts NaN/Infinity; strict JSON does not
    raise ValueError(f"non-standard JSON constant: {name}")


def strip_code_fences(raw: str) -> str:
    text = raw.strip()
    text = _FENCE_OPEN_RE.sub("", text, count=1)
    text = _FENCE_CLOSE_RE.sub("", text, count=1)
    return text.strip()


def normalize(raw: Any) -> Optional[List[Any]]:
    """
    Turn raw model text into a list of candidate items, or None.

    Accepts a bare JSON array or an object with an array ``items`` field.
    Every other shape, and any parse error, yields None. Never raises.
    """
    text = strip_code_fences("" if raw is None else str(raw))
    try:
        parsed = json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return None

    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict):
        items = parsed.get("items")
        if isinstance(items, list):
            return items
    return None
