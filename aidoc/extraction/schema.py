from typing import List, Literal, Optional, Union, get_args

from pydantic import BaseModel, Field

EventType = Literal["start", "end", "deadline", "sign", "payment", "other"]
EVENT_TYPES = frozenset(get_args(EventType))

Number = Union[int, float]


class DateEvent(BaseModel):
    date_text: str = ""                 # phrase exactly as written in the document
    date_iso: Optional[str] = None      # model's ISO value, never parsed by us
    type: EventType = "other"
    summary: str = ""
    source_file: str = ""
    page: Optional[Number] = None
    section: Optional[str] = None
    confidence: Optional[Number] = None  # not clamped


class ExtractionData(BaseModel):
    source_file: str
    items: List[DateEvent] = Field(default_factory=list)


class ExtractionOut(BaseModel):
    success: Literal[True] = True
    data: ExtractionData


class ErrorOut(BaseModel):
    success: Literal[False] = False
    errorMessage: str
