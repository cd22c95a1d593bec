# backend/formadb/apps/voice/schemas.py

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field


class FormField(BaseModel):
    """One input the page currently shows, as reported by the client."""

    id: Optional[str] = None
    name: Optional[str] = None
    label: Optional[str] = None
    placeholder: Optional[str] = None
    type: Optional[str] = None


class PageContext(BaseModel):
    url: Optional[str] = None
    title: Optional[str] = None
    form_fields: List[FormField] = Field(default_factory=list, alias="formFields")

    class Config:
        populate_by_name = True
        extra = "ignore"


class VoiceCommandRequest(BaseModel):
    user_input: str = Field(..., alias="userInput")
    page_context: Optional[PageContext] = Field(None, alias="pageContext")
    focused_element: Optional[Any] = Field(None, alias="focusedElement")

    class Config:
        populate_by_name = True


class VoiceAction(BaseModel):
    action: str = Field(
        ...,
        description="stop / navigate / fill_field / click_button / read_page / scroll / ask_clarification",
    )
    target: Optional[str] = None
    value: Optional[str] = None
    confidence: float
