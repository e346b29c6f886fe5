from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Sequence

from aidoc.config import Settings
from aidoc.extraction.normalizer import normalize
from aidoc.extraction.prompt_builder import Prompt, build_extraction_prompt, build_repair_prompt
from aidoc.extraction.sanitizer import sanitize
from aidoc.extraction.schema import DateEvent
from aidoc.llm.client import ChatModel
from aidoc.observability.logs import log_event
from aidoc.observability.metrics import record_model_call


class PipelineState(str, Enum):
    FIRST_ATTEMPT = "first_attempt"
    REPAIRING = "repairing"
    DONE = "done"
    EMPTY = "empty"


TERMINAL_STATES = frozenset({PipelineState.DONE, PipelineState.EMPTY})


def next_state(state: PipelineState, succeeded: bool) -> PipelineState:
    """Transition table. EMPTY is the worst outcome; nothing leads past it."""
    if state is PipelineState.FIRST_ATTEMPT:
        return PipelineState.DONE if succeeded else PipelineState.REPAIRING
    if state is PipelineState.REPAIRING:
        return PipelineState.DONE if succeeded else PipelineState.EMPTY
    raise ValueError(f"{state.value} is terminal")


def validate_output(raw: Any, fallback_source_file: str = "") -> Optional[List[DateEvent]]:
    """
    Normalize then sanitize. None means the output had no usable structure.

    An already-parsed list is taken as the candidate list as is.
    """
    candidates = raw if isinstance(raw, list) else normalize(raw)
    if candidates is None:
        return None
    return sanitize(candidates, fallback_source_file)


@dataclass
class PipelineResult:
    items: List[DateEvent] = field(default_factory=list)
    state: PipelineState = PipelineState.EMPTY
    repaired: bool = False


class DateExtractionPipeline:
    """
    Extraction call, then at most one repair call.

    Errors from the first call propagate: they are infrastructure failures the
    caller must report. Anything that goes wrong after that ends in EMPTY.
    """

    def __init__(self, settings: Settings, client: ChatModel, instructions: Optional[str] = None) -> None:
        self._settings = settings
        self._client = client
        self._instructions = instructions

    async def run(self, text: str, pages: Sequence[str], source_file: str) -> PipelineResult:
        prompt = build_extraction_prompt(text, pages, source_file, self._settings, self._instructions)
        state = PipelineState.FIRST_ATTEMPT
        raw = ""
        last_raw_chars = 0
        items: Optional[List[DateEvent]] = None
        repaired = False

        while state not in TERMINAL_STATES:
            if state is PipelineState.FIRST_ATTEMPT:
                raw = await self._first_attempt(prompt)
                last_raw_chars = len(raw)
                items = validate_output(raw, source_file)
            else:
                repaired = True
                repaired_raw = await self._repair(raw, prompt.schema)
                last_raw_chars = 0 if repaired_raw is None else len(repaired_raw)
                items = None if repaired_raw is None else validate_output(repaired_raw, source_file)

            if items is None:
                log_event("llm_output_unusable", stage=state.value, raw_chars=last_raw_chars)
            state = next_state(state, items is not None)

        if state is PipelineState.EMPTY:
            items = []
        log_event(
            "pipeline_finished",
            state=state.value,
            repaired=repaired,
            items=len(items or []),
        )
        return PipelineResult(items=items or [], state=state, repaired=repaired)

    async def extract(self, text: str, pages: Sequence[str], source_file: str) -> List[DateEvent]:
        return (await self.run(text, pages, source_file)).items

    async def _first_attempt(self, prompt: Prompt) -> str:
        try:
            raw = await self._client.complete(prompt.messages)
        except Exception:
            record_model_call("extract", "error")
            raise
        record_model_call("extract", "ok")
        return raw

    async def _repair(self, raw: str, schema: str) -> Optional[str]:
        """Returns None when the repair call itself failed."""
        prompt = build_repair_prompt(raw, schema)
        try:
            repaired = await self._client.complete(prompt.messages)
        except Exception as e:
            # Swallow: a failed repair degrades to an empty result
            record_model_call("repair", "error")
            log_event("repair_call_failed", level=logging.WARNING, error_type=type(e).__name__)
            return None
        record_model_call("repair", "ok")
        return repaired
