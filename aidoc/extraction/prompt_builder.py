from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, get_args

from aidoc.config import Settings
from aidoc.extraction.schema import EventType
from aidoc.llm.prompts import (
    EXTRACTION_INSTRUCTIONS,
    EXTRACTION_SYSTEM_PROMPT,
    REPAIR_INSTRUCTIONS,
    REPAIR_SYSTEM_PROMPT,
)
from aidoc.observability.logs import log_event

Message = Dict[str, str]

_TYPES = "|".join(get_args(EventType))

# Shared by the extraction and repair prompts
SCHEMA_DESCRIPTION = (
    '{"items":[{"date_text":"string","date_iso":"string|null",'
    f'"type":"{_TYPES}","summary":"string","source_file":"string",'
    '"page":number|null,"section":"string|null","confidence":number|null}]}'
)


@dataclass(frozen=True)
class Prompt:
    messages: List[Message]
    schema: str = SCHEMA_DESCRIPTION


def load_instructions(path: Optional[str]) -> Optional[str]:
    """Read custom extraction instructions; None means use the built-in text."""
    if not path:
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read().strip()
    except OSError as e:
        log_event("prompt_file_unavailable", level=logging.WARNING, path=path, error_type=type(e).__name__)
        return None
    return text or None


def _page_hints(pages: Sequence[str], settings: Settings) -> str:
    return "\n---\n".join(
        f"Page {idx}: {(page or '')[: settings.page_hint_chars]}"
        for idx, page in enumerate(pages[: settings.max_page_hints], start=1)
    )


def build_extraction_prompt(
    text: str,
    pages: Sequence[str],
    source_file: str,
    settings: Settings,
    instructions: Optional[str] = None,
) -> Prompt:
    trimmed = text[: settings.doc_char_limit]
    parts = [
        instructions or EXTRACTION_INSTRUCTIONS,
        f"Schema: {SCHEMA_DESCRIPTION}",
        f"File name: {source_file}",
        f"Content length: {len(trimmed)} / {len(text)} (may be truncated)",
        "Document text:",
        trimmed,
    ]
    hints = _page_hints(pages, settings)
    if hints:
        parts += ["Page hints (reference only; repeated fragments may be ignored):", hints]

    return Prompt(messages=[
        {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
        {"role": "user", "content": "\n\n".join(parts)},
    ])


def build_repair_prompt(raw: str, schema: str = SCHEMA_DESCRIPTION) -> Prompt:
    """
    Restricted prompt for the repair pass.

    The document is not included. The previous output travels as a JSON
    string value so it can't be read as part of the template.
    """
    previous = json.dumps({"previous_output": "" if raw is None else str(raw)}, ensure_ascii=False)
    content = "\n\n".join([
        REPAIR_INSTRUCTIONS,
        f"Schema: {schema}",
        previous,
    ])
    return Prompt(
        messages=[
            {"role": "system", "content": REPAIR_SYSTEM_PROMPT},
            {"role": "user", "content": content},
        ],
        schema=schema,
    )
