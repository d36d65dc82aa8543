"""
Conversation manager for the MleziCare dashboard.

This module holds everything the dashboard shows after login: the message log,
the mood history, the journal prompt, the chat input draft and the tool panel
state. Every change notifies stream subscribers, so a front end can re-render
from the snapshots it receives.
"""

import asyncio
import datetime
import logging
import random
from collections.abc import AsyncGenerator, Callable, Sequence
from contextlib import asynccontextmanager

from .content import (
    EMPTY_DAY_HEIGHT,
    FALLBACK_REPLY,
    JOURNAL_PROMPTS,
    MOODS,
    SYSTEM_INSTRUCTION,
    TOOLS,
    journal_entry_prefix,
    mood_message,
    mood_prompt,
    seed_messages,
)
from .context import CONTEXT_WINDOW, assemble_turns
from .generator import GeneratorUnavailable, TextGenerator
from .models import (
    ChartDay,
    DashboardSnapshot,
    Message,
    MoodEntry,
    ToolState,
    Turn,
)

logger = logging.getLogger(__name__)

MOOD_HISTORY_LIMIT = 7
CHART_DAYS = 7


class RequestInFlight(Exception):
    """A chat request is already outstanding for this conversation."""


class UnknownMood(ValueError):
    pass


class UnknownTool(ValueError):
    pass


class ConversationManager:
    """
    In-memory dashboard state with real-time streaming of snapshots.

    At most one chat request is outstanding at a time; a second send, or a mood
    check-in, made while one is pending is rejected with ``RequestInFlight``.
    Starting a new chat bumps a generation token, and a reply that arrives for
    an older generation is dropped instead of being appended to the fresh log.
    """

    def __init__(
        self,
        email: str,
        generator: TextGenerator | None,
        *,
        client_error: str | None = None,
        system_instruction: str = SYSTEM_INSTRUCTION,
        context_window: int = CONTEXT_WINDOW,
        rng: random.Random | None = None,
        today: Callable[[], datetime.date] = datetime.date.today,
    ) -> None:
        self.email = email
        self._generator = generator
        self._system_instruction = system_instruction
        self._context_window = context_window
        self._rng = rng or random.Random()
        self._today = today

        self._messages: list[Message] = seed_messages()
        self._mood_history: list[MoodEntry] = []
        self._draft = ""
        self._input_focused = False
        self._loading = False
        self._error = client_error
        self._tools = ToolState()
        self._journal_prompt = self._rng.choice(JOURNAL_PROMPTS)

        self._generation = 0
        self._closed = False
        self._condition = asyncio.Condition()
        self._update_counter = 0

    # MARK: - Read access

    @property
    def messages(self) -> list[Message]:
        """The full log, silent messages included."""
        return list(self._messages)

    def visible_messages(self) -> list[Message]:
        return [message for message in self._messages if not message.is_silent]

    @property
    def mood_history(self) -> list[MoodEntry]:
        return list(self._mood_history)

    @property
    def draft(self) -> str:
        return self._draft

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def journal_prompt(self) -> str:
        return self._journal_prompt

    @property
    def tools(self) -> ToolState:
        return self._tools.model_copy()

    def mood_chart(self, today: datetime.date | None = None) -> list[ChartDay]:
        """
        Build the weekly mood chart.

        Returns seven consecutive days ending today, oldest first. Each day
        shows the first check-in recorded on it, if any.
        """
        today = today or self._today()
        chart = []
        for offset in range(CHART_DAYS - 1, -1, -1):
            day = today - datetime.timedelta(days=offset)
            entry = next((e for e in self._mood_history if e.date == day), None)
            if entry is None:
                chart.append(
                    ChartDay(
                        date=day, weekday=day.strftime("%a"), height=EMPTY_DAY_HEIGHT
                    )
                )
                continue

            emoji, label, height = MOODS[entry.mood]
            chart.append(
                ChartDay(
                    date=day,
                    weekday=day.strftime("%a"),
                    mood=entry.mood,
                    emoji=emoji,
                    label=label,
                    height=height,
                )
            )
        return chart

    async def snapshot(self) -> DashboardSnapshot:
        async with self._condition:
            return self._snapshot()

    def _snapshot(self) -> DashboardSnapshot:
        active = self._tools.active_tool
        return DashboardSnapshot(
            email=self.email,
            conversation=self._generation,
            messages=self.visible_messages(),
            is_loading=self._loading,
            error=self._error,
            draft=self._draft,
            input_focused=self._input_focused,
            mood_history=list(self._mood_history),
            mood_chart=self.mood_chart() if self._mood_history else None,
            journal_prompt=self._journal_prompt,
            tools=self._tools.model_copy(),
            active_panel=TOOLS[active] if active and self._tools.modal_open else None,
        )

    # MARK: - Chat

    async def send_message(self, text: str | None = None) -> Message | None:
        """
        Send a user message and append the model's reply.

        Args:
            text: The message to send; defaults to the current input draft

        Returns:
            The model message appended to the log, or None when nothing was
            sent or the reply was dropped

        Raises:
            RequestInFlight: If a request is already outstanding
        """
        async with self._condition:
            request = self._start_request(text)
        if request is None:
            return None
        return await self._complete_request(*request)

    async def select_mood(self, mood: str) -> Message | None:
        """
        Record a mood check-in and ask the model for a supportive thought.

        The check-in is logged as a silent user message, then a visible prompt
        about the mood is sent.
        """
        if mood not in MOODS:
            raise UnknownMood(f"Unknown mood: {mood}")

        async with self._condition:
            if self._loading:
                raise RequestInFlight("A message is already being answered")

            entry = MoodEntry(mood=mood, date=self._today())
            self._mood_history = [*self._mood_history, entry][-MOOD_HISTORY_LIMIT:]
            self._messages.append(
                Message(sender="user", text=mood_message(mood), is_silent=True)
            )
            request = self._start_request(mood_prompt(mood))

        if request is None:
            return None
        return await self._complete_request(*request)

    async def new_chat(self) -> None:
        """Reset the log to the greeting and clear the input and banners."""
        async with self._condition:
            self._messages = seed_messages()
            self._draft = ""
            self._loading = False
            self._error = None
            self._generation += 1
            self._notify()

    async def set_draft(self, text: str) -> None:
        async with self._condition:
            self._draft = text
            self._notify()

    def _start_request(self, text: str | None) -> tuple[int, list[Turn]] | None:
        # Caller holds the condition lock.
        if text is None:
            text = self._draft
        if not text.strip():
            return None
        if self._loading:
            raise RequestInFlight("A message is already being answered")

        self._messages.append(Message(sender="user", text=text))
        if text == self._draft:
            self._draft = ""
        self._input_focused = False
        self._error = None

        turns = assemble_turns(self._messages, self._context_window)
        if not turns:
            logger.warning("Nothing to send after assembling the context")
            self._notify()
            return None

        self._loading = True
        self._notify()
        return self._generation, turns

    async def _complete_request(
        self, generation: int, turns: Sequence[Turn]
    ) -> Message | None:
        try:
            text = await self._generate(turns)
        except BaseException:
            # Cancelled while waiting on the model; the request is over.
            async with self._condition:
                if generation == self._generation:
                    self._loading = False
                    self._notify()
            raise

        async with self._condition:
            if generation != self._generation:
                logger.info("Dropping reply for a conversation that was reset")
                return None

            message = Message(sender="model", text=text)
            self._messages.append(message)
            self._loading = False
            self._notify()
            return message

    async def _generate(self, turns: Sequence[Turn]) -> str:
        try:
            if self._generator is None:
                raise GeneratorUnavailable("AI not initialized.")
            return await self._generator.generate(turns, self._system_instruction)
        except Exception:
            logger.exception("Chat request failed")
            return FALLBACK_REPLY

    # MARK: - Journal

    async def new_prompt(self) -> str:
        """Draw a journal prompt at random; repeats are allowed."""
        async with self._condition:
            self._journal_prompt = self._rng.choice(JOURNAL_PROMPTS)
            self._notify()
            return self._journal_prompt

    async def write_in_journal(self) -> str:
        """Quote the current prompt into the chat draft and focus the input."""
        async with self._condition:
            separator = "\n\n" if self._draft else ""
            prefix = journal_entry_prefix(self._journal_prompt)
            self._draft = f"{self._draft}{separator}{prefix}"
            self._input_focused = True
            self._notify()
            return self._draft

    # MARK: - Tools

    async def open_tool(self, tool_id: str) -> ToolState:
        if tool_id not in TOOLS:
            raise UnknownTool(f"Unknown tool: {tool_id}")

        async with self._condition:
            self._tools = ToolState(active_tool=tool_id, modal_open=True)
            self._notify()
            return self._tools.model_copy()

    async def close_tool(self) -> ToolState:
        async with self._condition:
            self._tools = self._tools.model_copy(update={"modal_open": False})
            self._notify()
            return self._tools.model_copy()

    # MARK: - Streaming

    async def close(self) -> None:
        """End all snapshot streams; used when the dashboard is unmounted."""
        async with self._condition:
            self._closed = True
            self._notify()

    @asynccontextmanager
    async def stream(
        self,
    ) -> AsyncGenerator[AsyncGenerator[DashboardSnapshot, None], None]:
        """
        Stream dashboard snapshots to a subscriber.

        Yields an async generator producing the current snapshot immediately,
        then one snapshot per state change until the manager is closed.
        """

        async def snapshot_generator() -> AsyncGenerator[DashboardSnapshot, None]:
            async with self._condition:
                last_seen_counter = self._update_counter
                current = self._snapshot()
            yield current

            # The lock is never held across a yield.
            try:
                while True:
                    async with self._condition:
                        await self._condition.wait_for(
                            lambda: self._closed
                            or self._update_counter > last_seen_counter
                        )
                        if self._closed:
                            return

                        last_seen_counter = self._update_counter
                        current = self._snapshot()
                    yield current

            except (asyncio.CancelledError, GeneratorExit):
                return

        yield snapshot_generator()

    def _notify(self) -> None:
        # Caller holds the condition lock.
        self._update_counter += 1
        self._condition.notify_all()
