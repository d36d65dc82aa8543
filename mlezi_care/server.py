"""
FastAPI server for the MleziCare service.

This module implements the HTTP API behind the login screen and the dashboard,
plus a Server-Sent Events stream of dashboard snapshots that a front end can
render from.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from .auth import LoginError
from .config import load_settings
from .content import TOOLS
from .conversation import ConversationManager, RequestInFlight, UnknownTool
from .models import (
    ChartDay,
    DashboardSnapshot,
    Message,
    MoodEntry,
    MoodName,
    Session,
    ToolPanel,
    ToolState,
)
from .session import AlreadyLoggedIn, NotAuthenticated, SessionController

logger = logging.getLogger(__name__)


# API Request/Response Schemas
class LoginRequest(BaseModel):
    """Payload of the login form."""

    email: str = Field("", description="Email address")
    password: str = Field("", description="Password; only checked for presence")


class ChatRequest(BaseModel):
    """Payload for sending a chat message."""

    message: str | None = Field(
        None, description="Message text; the current draft is sent when omitted"
    )


class ChatResponse(BaseModel):
    """Response model for chat endpoints."""

    reply: Message | None = Field(..., description="The model reply, if any")


class DraftUpdate(BaseModel):
    text: str = Field(..., description="The new chat input draft")


class DraftResponse(BaseModel):
    draft: str


class MoodSelection(BaseModel):
    """Payload for a mood check-in."""

    mood: MoodName = Field(..., description="The selected mood")


class MoodCheckInResponse(BaseModel):
    history: list[MoodEntry]
    reply: Message | None


class PromptResponse(BaseModel):
    prompt: str


class ErrorEvent(BaseModel):
    error: str


def create_app(controller: SessionController) -> FastAPI:
    """
    Create a FastAPI application around the given session controller.

    Args:
        controller: The SessionController instance to use for the application

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Lifespan context manager for FastAPI application."""
        yield
        await controller.logout()

    app = FastAPI(
        title="MleziCare",
        description="A wellness companion with mood tracking and an AI chat",
        version="0.1.0",
        lifespan=lifespan,
    )

    def dashboard() -> ConversationManager:
        try:
            return controller.dashboard
        except NotAuthenticated as e:
            raise HTTPException(status_code=401, detail=str(e))

    @app.get("/")
    async def root() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "mlezi-care"}

    # MARK: - Session

    @app.get("/session")
    async def get_session() -> Session:
        return controller.session

    @app.post("/login")
    async def login(form: LoginRequest) -> Session:
        """
        Log in and mount a fresh dashboard.

        Any well-formed email with a non-empty password is accepted. Logging
        in again requires logging out first.
        """
        try:
            return await controller.login(form.email, form.password)
        except AlreadyLoggedIn as e:
            raise HTTPException(status_code=409, detail=str(e))
        except LoginError as e:
            raise HTTPException(status_code=422, detail=str(e))

    @app.post("/logout")
    async def logout() -> Session:
        return await controller.logout()

    # MARK: - Dashboard

    @app.get("/dashboard")
    async def get_dashboard() -> DashboardSnapshot:
        return await dashboard().snapshot()

    @app.get("/dashboard/stream")
    async def stream_dashboard() -> StreamingResponse:
        """
        Stream dashboard snapshots via Server-Sent Events.

        The current snapshot is sent immediately upon connection, then one per
        state change until logout.

        Returns:
            StreamingResponse with text/event-stream content type
        """
        manager = dashboard()

        async def event_generator() -> AsyncGenerator[str, None]:
            """Generate SSE events for dashboard updates."""
            try:
                async with manager.stream() as snapshots:
                    async for snapshot in snapshots:
                        yield f"data: {snapshot.model_dump_json()}\n\n"
            except asyncio.CancelledError:
                # Client disconnected
                pass
            except Exception as e:
                logger.exception("Dashboard stream failed")
                error_data = ErrorEvent(error=str(e)).model_dump_json()
                yield f"event: error\ndata: {error_data}\n\n"

        return StreamingResponse(
            event_generator(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Headers": "*",
            },
        )

    # MARK: - Chat

    @app.post("/chat")
    async def send_message(request: ChatRequest) -> ChatResponse:
        """
        Send a chat message and wait for the companion's reply.

        Connection problems are answered with a fallback reply rather than an
        error status.
        """
        try:
            reply = await dashboard().send_message(request.message)
        except RequestInFlight as e:
            raise HTTPException(status_code=409, detail=str(e))
        return ChatResponse(reply=reply)

    @app.post("/chat/new")
    async def new_chat() -> DashboardSnapshot:
        manager = dashboard()
        await manager.new_chat()
        return await manager.snapshot()

    @app.put("/chat/draft")
    async def update_draft(update: DraftUpdate) -> DraftResponse:
        manager = dashboard()
        await manager.set_draft(update.text)
        return DraftResponse(draft=manager.draft)

    # MARK: - Mood

    @app.get("/mood")
    async def get_mood_history() -> list[MoodEntry]:
        return dashboard().mood_history

    @app.post("/mood")
    async def select_mood(selection: MoodSelection) -> MoodCheckInResponse:
        """Record a mood check-in and return the companion's supportive reply."""
        manager = dashboard()
        try:
            reply = await manager.select_mood(selection.mood)
        except RequestInFlight as e:
            raise HTTPException(status_code=409, detail=str(e))
        return MoodCheckInResponse(history=manager.mood_history, reply=reply)

    @app.get("/mood/chart")
    async def get_mood_chart() -> list[ChartDay]:
        return dashboard().mood_chart()

    # MARK: - Journal

    @app.get("/journal/prompt")
    async def get_prompt() -> PromptResponse:
        return PromptResponse(prompt=dashboard().journal_prompt)

    @app.post("/journal/prompt")
    async def new_prompt() -> PromptResponse:
        return PromptResponse(prompt=await dashboard().new_prompt())

    @app.post("/journal/write")
    async def write_in_journal() -> DraftResponse:
        """Quote the current prompt into the chat draft."""
        return DraftResponse(draft=await dashboard().write_in_journal())

    # MARK: - Tools

    @app.get("/tools")
    async def list_tools() -> list[ToolPanel]:
        dashboard()
        return list(TOOLS.values())

    @app.post("/tools/{tool_id}/open")
    async def open_tool(tool_id: str) -> ToolState:
        try:
            return await dashboard().open_tool(tool_id)
        except UnknownTool as e:
            raise HTTPException(status_code=404, detail=str(e))

    @app.post("/tools/close")
    async def close_tool() -> ToolState:
        return await dashboard().close_tool()

    return app


# Default app instance used by uvicorn
app = create_app(SessionController.from_settings(load_settings()))


def main() -> None:
    """Main entry point for the server."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "mlezi_care.server:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level="info",
    )


if __name__ == "__main__":
    main()
