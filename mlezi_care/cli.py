"""
Command-line interface for the MleziCare service.
"""

import asyncio
import json
from collections.abc import Coroutine
from typing import Any

import httpx
import typer
from httpx_sse import ServerSentEvent, aconnect_sse

from .models import DashboardSnapshot, Message

DEFAULT_BASE_URL = "http://localhost:8000"

app = typer.Typer(help="MleziCare CLI tools")

BASE_URL_OPTION = typer.Option(
    DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the MleziCare service"
)


# MARK: - Commands


@app.command()
def login(
    email: str = typer.Argument(..., help="Email address"),
    password: str = typer.Option(..., prompt=True, hide_input=True),
    base_url: str = BASE_URL_OPTION,
) -> None:
    """Log in to the dashboard."""

    async def _login() -> None:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{base_url}/login", json={"email": email, "password": password}
            )
            if response.status_code in (409, 422):
                print(f"Login failed: {_detail(response)}")
                raise typer.Exit(1)
            response.raise_for_status()
            print(f"Logged in as {response.json()['email']}")

    _run_with_error_handling(_login(), base_url)


@app.command()
def logout(base_url: str = BASE_URL_OPTION) -> None:
    """Log out and discard the dashboard."""

    async def _logout() -> None:
        async with httpx.AsyncClient() as client:
            response = await client.post(f"{base_url}/logout")
            response.raise_for_status()
            print("Logged out")

    _run_with_error_handling(_logout(), base_url)


@app.command()
def send(
    message: str = typer.Argument(..., help="The message to send"),
    base_url: str = BASE_URL_OPTION,
) -> None:
    """Send a chat message and print the reply."""

    async def _send() -> None:
        async with httpx.AsyncClient(timeout=None) as client:
            response = await client.post(f"{base_url}/chat", json={"message": message})
            response.raise_for_status()
            reply = response.json()["reply"]
            if reply is None:
                print("No reply")
            else:
                print(_format_message(Message.model_validate(reply)))

    _run_with_error_handling(_send(), base_url)


@app.command("new-chat")
def new_chat(base_url: str = BASE_URL_OPTION) -> None:
    """Start a new conversation."""

    async def _new_chat() -> None:
        async with httpx.AsyncClient() as client:
            response = await client.post(f"{base_url}/chat/new")
            response.raise_for_status()
            snapshot = DashboardSnapshot.model_validate(response.json())
            for msg in snapshot.messages:
                print(_format_message(msg))

    _run_with_error_handling(_new_chat(), base_url)


@app.command()
def mood(
    value: str | None = typer.Argument(
        None, help="happy, neutral, sad or anxious; omit to show the history"
    ),
    base_url: str = BASE_URL_OPTION,
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """Check in a mood, or show the mood history."""

    async def _mood() -> None:
        async with httpx.AsyncClient(timeout=None) as client:
            if value is None:
                response = await client.get(f"{base_url}/mood")
            else:
                response = await client.post(f"{base_url}/mood", json={"mood": value})
            response.raise_for_status()
            result = response.json()

            if json_output:
                print(json.dumps(result, indent=2))
                return

            history = result if value is None else result["history"]
            if not history:
                print("No moods logged")
            for entry in history:
                print(f"{entry['date']} {entry['mood']}")

            if value is not None and result["reply"] is not None:
                print(_format_message(Message.model_validate(result["reply"])))

    _run_with_error_handling(_mood(), base_url)


@app.command()
def prompt(
    new: bool = typer.Option(False, "--new", "-n", help="Draw a new prompt"),
    write: bool = typer.Option(
        False, "--write", "-w", help="Quote the prompt into the chat draft"
    ),
    base_url: str = BASE_URL_OPTION,
) -> None:
    """Show the journal prompt."""

    async def _prompt() -> None:
        async with httpx.AsyncClient() as client:
            if new:
                response = await client.post(f"{base_url}/journal/prompt")
            else:
                response = await client.get(f"{base_url}/journal/prompt")
            response.raise_for_status()
            print(response.json()["prompt"])

            if write:
                response = await client.post(f"{base_url}/journal/write")
                response.raise_for_status()
                print(f"Draft: {response.json()['draft']}")

    _run_with_error_handling(_prompt(), base_url)


@app.command()
def tool(
    tool_id: str = typer.Argument(
        ..., help="breathing, grounding, affirmations or crisis"
    ),
    base_url: str = BASE_URL_OPTION,
) -> None:
    """Open a self-care tool and print its panel."""

    async def _tool() -> None:
        async with httpx.AsyncClient() as client:
            response = await client.post(f"{base_url}/tools/{tool_id}/open")
            if response.status_code == 404:
                print(f"Unknown tool: {tool_id}")
                raise typer.Exit(1)
            response.raise_for_status()

            response = await client.get(f"{base_url}/dashboard")
            response.raise_for_status()
            panel = DashboardSnapshot.model_validate(response.json()).active_panel
            if panel is None:
                return
            print(panel.heading)
            if panel.warning:
                print(panel.warning)
            for line in panel.body:
                print(f"  {line}")

            response = await client.post(f"{base_url}/tools/close")
            response.raise_for_status()

    _run_with_error_handling(_tool(), base_url)


@app.command()
def stream(base_url: str = BASE_URL_OPTION) -> None:
    """Stream the chat in real-time."""

    async def _stream() -> None:
        print(f"Streaming from {base_url}/dashboard/stream... (Ctrl+C to stop)")

        async with httpx.AsyncClient(timeout=None) as client:
            async with aconnect_sse(
                client, "GET", f"{base_url}/dashboard/stream"
            ) as event_source:
                event_source.response.raise_for_status()
                cursor = (-1, 0)
                async for sse in event_source.aiter_sse():
                    cursor = _handle_sse_event(sse, cursor)

    _run_with_error_handling(_stream(), base_url)


# MARK: - Private Helpers


def _detail(response: httpx.Response) -> str:
    try:
        return str(response.json().get("detail", response.text))
    except json.JSONDecodeError:
        return response.text


def _format_message(message: Message) -> str:
    name = "You" if message.sender == "user" else "Mlezi"
    return f"{name} > {message.text}"


def _handle_sse_event(
    sse: ServerSentEvent, cursor: tuple[int, int]
) -> tuple[int, int]:
    """
    Print messages not seen yet.

    The cursor is the conversation number and how many of its messages have
    been printed; the updated cursor is returned.
    """
    conversation, printed = cursor
    try:
        if sse.event == "error":
            error_data = json.loads(sse.data)
            print(f"Server error: {error_data.get('error', 'Unknown error')}")
            return cursor

        snapshot = DashboardSnapshot.model_validate_json(sse.data)

        # A new chat restarts the log
        if snapshot.conversation != conversation:
            printed = 0
        for msg in snapshot.messages[printed:]:
            print(_format_message(msg))
        if snapshot.is_loading:
            print("Mlezi is typing...")
        return snapshot.conversation, len(snapshot.messages)

    except ValueError as e:
        print(f"Warning: Could not parse SSE data: {sse.data} - {e}")
        return cursor


def _run_with_error_handling(coro: Coroutine[Any, Any, Any], base_url: str) -> None:
    """Run an async coroutine with standardized error handling."""
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        print("\nStopped")
        raise typer.Exit(0)
    except httpx.ConnectError:
        print(f"Error: Could not connect to {base_url}")
        raise typer.Exit(1)
    except httpx.HTTPStatusError as e:
        if e.response.status_code == 401:
            print("Error: Not logged in")
        elif e.response.status_code == 409:
            print("Error: Still waiting for the previous reply")
        else:
            print(f"Error: HTTP {e.response.status_code}")
        raise typer.Exit(1)
    except typer.Exit:
        raise
    except Exception as e:
        error_msg = str(e) if str(e) else f"Unknown error of type {type(e).__name__}"
        print(f"Error: {error_msg}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
