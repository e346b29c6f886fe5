from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from aidoc.extraction.schema import EVENT_TYPES, DateEvent, Number


def _string(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _non_blank(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _number(value: Any) -> Optional[Number]:
    # bool is an int subclass but JSON true/false are not numbers
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return None


def sanitize_item(item: Any, fallback_source_file: str = "") -> DateEvent:
    """
    Coerce one untrusted candidate into a DateEvent.

    Only the known fields are read; anything else the model produced is
    dropped. A candidate that is not an object gets all defaults.
    """
    raw: Mapping[str, Any] = item if isinstance(item, Mapping) else {}

    event_type = raw.get("type")
    fields: Dict[str, Any] = {
        "date_text": _string(raw.get("date_text")),
        "date_iso": _non_blank(raw.get("date_iso")),
        "type": event_type if isinstance(event_type, str) and event_type in EVENT_TYPES else "other",
        "summary": _string(raw.get("summary")),
        "source_file": _non_blank(raw.get("source_file")) or fallback_source_file or "",
        "page": _number(raw.get("page")),
        "section": _non_blank(raw.get("section")),
        "confidence": _number(raw.get("confidence")),
    }
    return DateEvent(**fields)


def sanitize(candidates: Iterable[Any], fallback_source_file: str = "") -> List[DateEvent]:
    """Sanitize every candidate independently, keeping model order."""
    return [sanitize_item(c, fallback_source_file) for c in candidates]
