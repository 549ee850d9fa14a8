from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

Mode = Literal["add", "edit"]
StepStatus = Literal["valid", "invalid", "incomplete"]


class DraftRecord(BaseModel):
    version: str = "1.0"
    document: Dict[str, Any]
    saved_at: datetime


class DraftPrompt(BaseModel):
    saved_at: Optional[datetime] = None
    age: Optional[str] = None


class StepDefinition(BaseModel):
    id: str
    title: str
    description: str = ""
    fields: List[str] = Field(default_factory=list)
    required: Optional[List[str]] = None
    review: bool = False


class PriceBinding(BaseModel):
    numeric: str
    display: str
    currency: Optional[str] = None
    default_currency: str = "AED"


class SessionState(BaseModel):
    entity: str
    mode: Mode = "add"

    document: Dict[str, Any] = Field(default_factory=dict)
    baseline_document: Dict[str, Any] = Field(default_factory=dict)
    original_document: Optional[Dict[str, Any]] = None

    current_step: int = 0
    errors: Dict[str, str] = Field(default_factory=dict)
    is_submitting: bool = False

    draft_prompt: Optional[DraftPrompt] = None
    draft_restored: bool = False
    initialized: bool = False
    closed: bool = False


class SubmissionState(BaseModel):
    entity: str
    mode: Mode
    document: Dict[str, Any]
    payload: Optional[Dict[str, Any]] = None

    status: Literal["pending", "invalid", "saved", "failed"] = "pending"
    errors: Dict[str, str] = Field(default_factory=dict)
    warnings: List[str] = Field(default_factory=list)
    message: Optional[str] = None
