from __future__ import annotations

import logging
import uuid
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from aidoc.config import Settings, get_settings
from aidoc.documents.extractor import DocumentError, extract_text
from aidoc.extraction.pipeline import DateExtractionPipeline
from aidoc.extraction.prompt_builder import load_instructions
from aidoc.extraction.schema import ErrorOut, ExtractionData, ExtractionOut
from aidoc.llm.client import ModelClient, ModelClientError
from aidoc.observability.logs import log_event
from aidoc.observability.metrics import (
    record_error, record_pipeline, record_request, timer_observe_ms, timer_start
)

router = APIRouter(tags=["extraction"])


@lru_cache(maxsize=4)
def get_model_client(settings: Settings) -> ModelClient:
    # One connection pool per configuration; holds no request state
    return ModelClient(settings)


@lru_cache(maxsize=4)
def _instructions_for(path: Optional[str]) -> Optional[str]:
    return load_instructions(path)


def get_pipeline(settings: Settings = Depends(get_settings)) -> DateExtractionPipeline:
    return DateExtractionPipeline(
        settings,
        get_model_client(settings),
        instructions=_instructions_for(settings.prompt_path),
    )


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorOut(errorMessage=message).model_dump())


@router.post(
    "/extract-dates",
    response_model=ExtractionOut,
    responses={400: {"model": ErrorOut}, 413: {"model": ErrorOut}, 500: {"model": ErrorOut}},
)
@router.post("/api/document-extraction/dates", response_model=ExtractionOut, include_in_schema=False)
async def extract_dates(
    file: Optional[UploadFile] = File(None),
    settings: Settings = Depends(get_settings),
    pipeline: DateExtractionPipeline = Depends(get_pipeline),
):
    t0 = timer_start()
    request_id = str(uuid.uuid4())

    if file is None:
        timer_observe_ms(t0)
        record_request("missing_file")
        return _error(400, "Missing file")

    source_file = file.filename or ""
    try:
        # Read one byte past the limit so oversize uploads are detected without parsing
        data = await file.read(settings.max_upload_bytes + 1)
    finally:
        await file.close()

    if len(data) > settings.max_upload_bytes:
        timer_observe_ms(t0)
        record_request("too_large")
        log_event("upload_rejected", request_id=request_id, reason="too_large", limit=settings.max_upload_bytes)
        return _error(413, f"File exceeds the upload limit of {settings.max_upload_bytes} bytes")

    try:
        try:
            doc = await run_in_threadpool(extract_text, data, source_file, file.content_type)
        except DocumentError as e:
            timer_observe_ms(t0)
            record_request("input_error")
            record_error(type(e).__name__)
            log_event("document_rejected", request_id=request_id, error_type=type(e).__name__)
            return _error(400, f"Failed to parse file: {e}")

        log_event(
            "extraction_request",
            request_id=request_id,
            text_chars=len(doc.text),
            pages=len(doc.pages),
        )

        try:
            result = await pipeline.run(doc.text, doc.pages, source_file)
        except ModelClientError as e:
            timer_observe_ms(t0)
            record_request("upstream_error")
            record_error(type(e).__name__)
            log_event("llm_failed", level=logging.ERROR, request_id=request_id, error_type=type(e).__name__)
            return _error(500, f"LLM service failed: {e}")

        elapsed_ms = timer_observe_ms(t0)
        record_request("ok")
        record_pipeline(result.state.value, result.repaired)
        log_event(
            "extraction_response",
            request_id=request_id,
            state=result.state.value,
            repaired=result.repaired,
            items=len(result.items),
            elapsed_ms=round(elapsed_ms, 2),
        )
        return ExtractionOut(data=ExtractionData(source_file=source_file, items=result.items))

    except Exception as e:
        timer_observe_ms(t0)
        record_request("internal_error")
        record_error(type(e).__name__)
        log_event("extraction_error", level=logging.ERROR, request_id=request_id, error_type=type(e).__name__)
        return _error(500, f"LLM service failed: {type(e).__name__}")
