"""
Tests for the CLI's stream rendering.
"""

from httpx_sse import ServerSentEvent

from mlezi_care.cli import _format_message, _handle_sse_event
from mlezi_care.content import GREETING
from mlezi_care.models import DashboardSnapshot, Message, ToolState


def snapshot_event(
    texts: list[str], loading: bool = False, conversation: int = 0
) -> ServerSentEvent:
    messages = [
        Message(sender="model" if i % 2 == 0 else "user", text=text)
        for i, text in enumerate(texts)
    ]
    snapshot = DashboardSnapshot(
        email="me@example.com",
        conversation=conversation,
        messages=messages,
        is_loading=loading,
        mood_history=[],
        journal_prompt="What are you grateful for right now, big or small?",
        tools=ToolState(),
    )
    return ServerSentEvent(data=snapshot.model_dump_json())


class TestStreamRendering:
    def test_prints_only_new_messages(self, capsys):
        cursor = _handle_sse_event(snapshot_event([GREETING]), (-1, 0))
        cursor = _handle_sse_event(
            snapshot_event([GREETING, "Hi"], loading=True), cursor
        )

        assert cursor == (0, 2)
        out = capsys.readouterr().out.splitlines()
        assert out == [f"Mlezi > {GREETING}", "You > Hi", "Mlezi is typing..."]

    def test_new_chat_starts_over(self, capsys):
        cursor = _handle_sse_event(snapshot_event([GREETING], conversation=1), (0, 3))

        assert cursor == (1, 1)
        assert capsys.readouterr().out.splitlines() == [f"Mlezi > {GREETING}"]

    def test_new_chat_with_same_length_log(self, capsys):
        """Test that a reset is noticed even when the new log is as long."""
        cursor = _handle_sse_event(
            snapshot_event([GREETING, "Old question", "Old answer"]), (-1, 0)
        )
        capsys.readouterr()

        cursor = _handle_sse_event(
            snapshot_event(
                [GREETING, "New question", "New answer"], conversation=1
            ),
            cursor,
        )

        assert cursor == (1, 3)
        assert capsys.readouterr().out.splitlines() == [
            f"Mlezi > {GREETING}",
            "You > New question",
            "Mlezi > New answer",
        ]

    def test_error_event(self, capsys):
        sse = ServerSentEvent(event="error", data='{"error": "boom"}')

        assert _handle_sse_event(sse, (0, 2)) == (0, 2)
        assert capsys.readouterr().out.strip() == "Server error: boom"

    def test_bad_payload(self, capsys):
        assert _handle_sse_event(ServerSentEvent(data="not json"), (0, 1)) == (0, 1)
        assert "Could not parse" in capsys.readouterr().out

    def test_format_message(self):
        assert _format_message(Message(sender="user", text="hey")) == "You > hey"
