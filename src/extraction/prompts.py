from __future__ import annotations

from datetime import datetime, timedelta

EXTRACTION_SYSTEM_PROMPT = (
    "You are an expert at extracting structured event data from natural language. "
    "Pay special attention to person names and location names. Always include complete "
    "context in titles and identify full location names exactly as mentioned."
)

SIMPLIFIED_SYSTEM_PROMPT = (
    "Extract structured event data. Keep person names and locations complete."
)


def _day(d: datetime) -> str:
    return d.strftime("%Y-%m-%d")


def build_extraction_prompt(text: str, now: datetime) -> str:
    today = _day(now)
    tomorrow = _day(now + timedelta(days=1))
    return f"""You are an expert event scheduler. Extract event details from this user message:

TEXT: "{text}"

Extract these 3 things:
1. TITLE: Full event name including "with [Person]" if mentioned
2. DATETIME: When the event should happen (handle "tomorrow", "8pm", etc.)
3. LOCATION: Where the event happens if mentioned

DATE CALCULATION:
- TODAY is {today}
- TOMORROW is {tomorrow}
- If text mentions "tomorrow", use {tomorrow} as the date
- If text mentions "today" or no date at all, use {today} as the date
- Always use 24-hour format for time (8pm = 20:00)

EXAMPLES:
- "meeting with john at 3pm" -> {today} 15:00
- "lunch tomorrow at 2pm" -> {tomorrow} 14:00
- "call at room 809" -> location "Room 809"

RULES:
- If text says "with John", include "with John" in the title
- If text says "at Room 809", location is "Room 809"
- Use proper capitalization

OUTPUT FORMAT (JSON only, no other text):
{{"title": "[Full title with person name]", "datetime": "YYYY-MM-DD HH:MM", "location": "[Location name or empty string]"}}
"""


def build_simplified_prompt(text: str, now: datetime) -> str:
    return f"""Extract event information from: "{text}"

Today is {_day(now)}. Give me just:
- Event name (include person names if mentioned)
- Location (if mentioned)
- Time (parse "7pm" as 19:00, "tomorrow" as {_day(now + timedelta(days=1))})

Format as JSON:
{{"title": "Event Name", "datetime": "YYYY-MM-DD HH:MM", "location": "Location Name"}}
"""
