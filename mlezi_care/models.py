"""
Shared data models for the MleziCare service.

This module defines the core domain models used across multiple layers
of the application (conversation logic, session handling, CLI, API).
"""

import datetime
from typing import Literal

from pydantic import BaseModel, Field

Sender = Literal["user", "model"]
MoodName = Literal["happy", "neutral", "sad", "anxious"]
ToolId = Literal["breathing", "grounding", "affirmations", "crisis"]


class Message(BaseModel):
    """A single entry of the conversation log."""

    sender: Sender = Field(..., description="Who authored the message")
    text: str = Field(..., description="The message text")
    is_silent: bool = Field(
        False, description="Kept in the log but hidden from the chat history"
    )


class Turn(BaseModel):
    """One turn of a request to the text generation service."""

    role: Sender = Field(..., description="Role of the turn author")
    text: str = Field(..., description="The turn text")

    def to_content(self) -> dict:
        """Render the turn in the generation service's wire format."""
        return {"role": self.role, "parts": [{"text": self.text}]}


class MoodEntry(BaseModel):
    """A recorded mood check-in."""

    mood: MoodName = Field(..., description="The selected mood")
    date: datetime.date = Field(..., description="Calendar day of the check-in")


class ChartDay(BaseModel):
    """One bar of the weekly mood chart."""

    date: datetime.date
    weekday: str = Field(..., description="Short weekday label, e.g. 'Mon'")
    mood: MoodName | None = None
    emoji: str | None = None
    label: str = Field("No entry", description="Mood label or placeholder")
    height: int = Field(..., description="Bar height as a percentage")


class Session(BaseModel):
    """Authentication state of the page."""

    authenticated: bool = False
    email: str = ""


class ToolPanel(BaseModel):
    """Static content of a self-care tool."""

    id: ToolId
    title: str
    summary: str
    action: str = Field(..., description="Label of the button opening the panel")
    heading: str
    body: list[str] = Field(default_factory=list)
    warning: str | None = None


class ToolState(BaseModel):
    """Which tool panel is shown."""

    active_tool: ToolId | None = None
    modal_open: bool = False


class DashboardSnapshot(BaseModel):
    """Serialisable view of everything the dashboard renders."""

    email: str
    conversation: int = Field(0, description="Bumped by every new chat")
    messages: list[Message]
    is_loading: bool
    error: str | None = None
    draft: str = ""
    input_focused: bool = False
    mood_history: list[MoodEntry]
    mood_chart: list[ChartDay] | None = None
    journal_prompt: str
    tools: ToolState
    active_panel: ToolPanel | None = None
