"""User prompt construction for model-based extraction.

The system prompt (instructions) lives in config/prompts/extraction.yaml;
this module renders the per-request user prompt: the sample schema, today's
date, recent conversation history and the user text.
"""

import json
from datetime import date
from typing import Any, Final

from event_assistant.domain.models import ChatMessage

SAMPLE_EVENT: Final[dict[str, Any]] = {
    "type": "Birthday Party",
    "title": "Birthday Party for John",
    "date": "2025-07-15",
    "time": "18:00",
    "endTime": "22:00",
    "location": "Lakeview Hall",
    "address": "123 Main St, Anytown, CA 12345",
    "image": "https://source.unsplash.com/random/1200x600/?birthday,party",
    "category": "Celebration",
    "description": "A birthday party for John",
    "organizer": {
        "name": "John Smith",
        "image": "https://source.unsplash.com/random/100x100/?person",
    },
    "price": "$0",
    "expectedGuests": 10,
    "maxAttendees": 20,
    "budget": 200,
    "notes": "Remember to bring gifts",
    "schedule": [
        {
            "day": "Day 1",
            "items": [
                {"time": "6:00 PM", "title": "Arrival"},
                {"time": "7:00 PM", "title": "Dinner"},
                {"time": "8:00 PM", "title": "Cake Cutting"},
            ],
        }
    ],
    "attendees": [],
}
"""Fixed JSON sample the model is asked to mirror."""

HISTORY_MESSAGE_LIMIT: Final[int] = 6
"""Only the most recent history messages are included."""

ROLE_LABELS: Final[dict[str, str]] = {"user": "User", "assistant": "Assistant"}


def render_history(history: list[ChatMessage]) -> str:
    recent = history[-HISTORY_MESSAGE_LIMIT:]
    return "\n".join(f"{ROLE_LABELS[m.role]}: {m.content}" for m in recent)


def build_extraction_prompt(
    text: str, today: date, history: list[ChatMessage] | None = None
) -> str:
    """Render the user prompt for one extraction request.

    Args:
        text: User text (already capped to the input limit)
        today: Date that relative expressions refer to
        history: Optional earlier conversation turns

    Returns:
        Prompt text
    """
    parts = [
        "Extract event details from the user message below. Respond with a single "
        "JSON object that has exactly these fields:",
        json.dumps(SAMPLE_EVENT, indent=2),
        f"Today's date: {today.isoformat()} ({today.strftime('%A')})",
    ]
    if history:
        parts.append(f"Conversation so far:\n{render_history(history)}")
    parts.append(f'User message: "{text}"')
    parts.append("Respond ONLY with the JSON object, nothing else.")
    return "\n\n".join(parts)
