"""
Conversation context assembly.

Turns the conversation log into the turn list sent to the text generation
service. The service requires strict user/model alternation, a user-authored
first turn, and at least one turn, so the log is windowed, filtered, merged and
trimmed before every request.
"""

from collections.abc import Sequence

from .models import Message, Turn

CONTEXT_WINDOW = 20  # about ten user/model exchanges


def window(messages: Sequence[Message], size: int = CONTEXT_WINDOW) -> list[Message]:
    """Keep the last ``size`` messages, in order."""
    if size <= 0:
        return []
    return list(messages[-size:])


def visible_to_model(messages: Sequence[Message]) -> list[Message]:
    """Drop silent messages; they only exist for the dashboard's bookkeeping."""
    return [message for message in messages if not message.is_silent]


def merge_turns(turns: Sequence[Turn]) -> list[Turn]:
    """
    Fold adjacent turns of the same role into one, joining their text with a
    newline.

    The result never holds two adjacent turns with the same role, so merging
    it again returns it unchanged.
    """
    merged: list[Turn] = []
    for turn in turns:
        if merged and merged[-1].role == turn.role:
            last = merged[-1]
            merged[-1] = Turn(role=last.role, text=f"{last.text}\n{turn.text}")
        else:
            merged.append(Turn(role=turn.role, text=turn.text))
    return merged


def drop_leading_model_turn(turns: Sequence[Turn]) -> list[Turn]:
    """Remove the first turn when the model authored it."""
    if turns and turns[0].role == "model":
        return list(turns[1:])
    return list(turns)


def assemble_turns(
    messages: Sequence[Message], size: int = CONTEXT_WINDOW
) -> list[Turn]:
    """
    Build the request turns for a conversation log.

    Args:
        messages: The log, with the new user message already at the tail
        size: How many trailing log entries to consider

    Returns:
        The turns to send. An empty list means no request should be made.
    """
    recent = visible_to_model(window(messages, size))
    turns = merge_turns([Turn(role=m.sender, text=m.text) for m in recent])
    return drop_leading_model_turn(turns)


def to_contents(turns: Sequence[Turn]) -> list[dict]:
    """Render turns in the ``{role, parts: [{text}]}`` wire format."""
    return [turn.to_content() for turn in turns]
