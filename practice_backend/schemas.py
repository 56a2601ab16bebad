"""
Pydantic schemas for the practice tracker API.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    timestamp: str
    environment: str


class ErrorResponse(BaseModel):
    success: Literal[False] = False
    error: str


class PracticeRecordModel(BaseModel):
    date: str
    writing_submitted: bool = False
    writing_char_count: int = 0
    writing_word_count: int = 0
    speech_detected: bool = False
    notes: Optional[str] = None
    updated_at: Optional[str] = None


class PracticeListResponse(BaseModel):
    success: bool = True
    data: list[PracticeRecordModel]


class SubmissionItemModel(BaseModel):
    title: str
    identifier: str


class DailyRecordModel(BaseModel):
    date: str
    contribution_active: bool = False
    contribution_count: int = 0
    submission_active: bool = False
    submission_count: int = 0
    submission_items: list[SubmissionItemModel] = Field(default_factory=list)
    writing_submitted: bool = False
    writing_char_count: int = 0
    writing_word_count: int = 0
    speech_detected: bool = False
    notes: Optional[str] = None
    updated_at: Optional[str] = None


class LivePracticeResponse(BaseModel):
    success: bool = True
    data: list[DailyRecordModel]
    source: Literal["live"] = "live"
    timestamp: str


# date and content are validated by the handler, not the schema.
class WritingSubmissionRequest(BaseModel):
    date: Optional[str] = None
    content: Optional[str] = None
    notes: Optional[str] = None


class WritingSubmissionData(BaseModel):
    date: str
    chars: int
    words: int
    message: str


class WritingSubmissionResponse(BaseModel):
    success: bool = True
    data: WritingSubmissionData


class DeletePracticeData(BaseModel):
    date: str


class DeletePracticeResponse(BaseModel):
    success: bool = True
    data: DeletePracticeData
