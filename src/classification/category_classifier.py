"""
Event category classification.

Order of precedence: auto-detect switch, user overrides (exact key match), AI
classification, keyword heuristics. Predictions under the confidence threshold are
still returned, flagged ``needs_review`` so the caller can ask for confirmation.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from calendar_assist.errors import AssistError
from calendar_assist.models import (
    CategoryPrediction,
    ClassificationInput,
    EventCategory,
    EventDraft,
)
from calendar_assist.settings import AssistSettings
from llm.llm_client import LLMClient, extract_json_object
from storage.override_store import OverrideStore

logger = logging.getLogger(__name__)

KEYWORD_CONFIDENCE = 0.3
FAILURE_CONFIDENCE = 0.1

KEYWORD_RULES = (
    (("class", "lecture", "seminar"), EventCategory.CLASS),
    (("exam", "test", "quiz"), EventCategory.EXAM),
    (("due", "deadline", "submit"), EventCategory.DUE_DATE),
    (("study", "homework", "assignment"), EventCategory.SCHOOL_WORK),
    (("friend", "party", "hangout"), EventCategory.FRIENDS),
)

CATEGORY_RULES = {
    EventCategory.CLASS: "Lectures, seminars, courses, academic meetings",
    EventCategory.FRIENDS: "Social events, hangouts, parties with friends",
    EventCategory.SCHOOL_WORK: "Study sessions, group projects, homework time",
    EventCategory.DUE_DATE: "Assignment deadlines, project submissions",
    EventCategory.EXAM: "Tests, quizzes, finals, midterms",
    EventCategory.PERSONAL: "Doctor appointments, personal tasks, self-care",
    EventCategory.SIGNIFICANT_OTHER: "Events with {partner}, romantic dates, couple activities",
}

CLASSIFICATION_SYSTEM_PROMPT = """You are an expert at categorizing calendar events. Analyze the event details and classify them into the most appropriate category with high accuracy.

Consider context clues:
- Time patterns (classes are often recurring, exams are one-time)
- Location (classrooms vs social venues vs home)
- Keywords and phrases that indicate the event type
- Attendees and social context

Be conservative with confidence scores - only use high confidence (>0.8) when you're very certain."""


def _norm(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def override_key(data: ClassificationInput) -> str:
    """``title|location|description``, lower-cased; missing parts stay as empty slots."""
    return "|".join((_norm(data.title), _norm(data.location), _norm(data.description)))


def title_key(data: ClassificationInput) -> str:
    return f"title:{_norm(data.title)}"


def location_key(data: ClassificationInput) -> Optional[str]:
    location = _norm(data.location)
    return f"location:{location}" if location else None


class CategoryClassifier:
    def __init__(
        self,
        llm: Optional[LLMClient] = None,
        overrides: Optional[Dict[str, EventCategory]] = None,
        store: Optional[OverrideStore] = None,
        settings: Optional[AssistSettings] = None,
    ):
        self.llm = llm or LLMClient()
        self.store = store
        self.settings = settings or AssistSettings()
        if overrides is not None:
            self.overrides = overrides
        elif store is not None:
            self.overrides = store.load()
        else:
            self.overrides = {}

    # -- categories ------------------------------------------------------------

    def enabled_categories(self) -> List[EventCategory]:
        return [
            c for c in EventCategory
            if c != EventCategory.SIGNIFICANT_OTHER or self.settings.significant_other_enabled
        ]

    def _partner(self) -> Optional[str]:
        if not self.settings.significant_other_enabled:
            return None
        return _norm(self.settings.significant_other_name) or None

    # -- overrides -------------------------------------------------------------

    def lookup_override(self, data: ClassificationInput) -> Optional[EventCategory]:
        if self.store is not None:
            # other sessions may have saved since we loaded
            self.overrides.update(self.store.load())
        for key in (override_key(data), title_key(data), location_key(data)):
            if key and key in self.overrides:
                return self.overrides[key]
        return None

    def save_override(
        self,
        data: ClassificationInput,
        category: EventCategory,
        apply_to_similar: bool = False,
    ) -> None:
        category = EventCategory(category)
        saved = {override_key(data): category}

        if apply_to_similar:
            saved[title_key(data)] = category
            loc = location_key(data)
            if loc:
                saved[loc] = category

        self.overrides.update(saved)
        if self.store is not None:
            self.store.merge(saved)
        logger.info(f"Saved category override '{override_key(data)}' -> {category.value}")

    # -- classification --------------------------------------------------------

    async def classify(self, data: ClassificationInput) -> CategoryPrediction:
        if not self.settings.auto_detect_enabled:
            return CategoryPrediction(category=EventCategory.PERSONAL, confidence=0.0, source="default")

        overridden = self.lookup_override(data)
        if overridden is not None:
            return CategoryPrediction(category=overridden, confidence=1.0, source="manual")

        prediction = await self._ai_classification(data)

        if prediction.confidence >= self.settings.auto_detect_threshold:
            return prediction

        logger.info(
            f"Low confidence ({prediction.confidence:.2f}) for '{data.title}' -> "
            f"{prediction.category.value}, flagged for review"
        )
        return CategoryPrediction(
            category=prediction.category,
            confidence=prediction.confidence,
            source="auto",
            needs_review=True,
        )

    async def _ai_classification(self, data: ClassificationInput) -> CategoryPrediction:
        try:
            response = await self.llm.generate(
                self.build_prompt(data),
                system_prompt=CLASSIFICATION_SYSTEM_PROMPT,
            )
        except AssistError as e:
            logger.warning(f"Classification failed, using keyword heuristics: {e}")
            return self.keyword_prediction(data)

        prediction = self.parse_response(response)
        if prediction is None:
            logger.info(f"Unusable classification response for '{data.title}', using keyword heuristics")
            return self.keyword_prediction(data)
        return prediction

    def parse_response(self, response: str) -> Optional[CategoryPrediction]:
        data = extract_json_object(response)
        if data is None:
            return None

        try:
            category = EventCategory(str(data.get("category", "")).strip().lower())
            confidence = float(data["confidence"])
        except (KeyError, TypeError, ValueError):
            return None

        if category not in self.enabled_categories():
            return None

        return CategoryPrediction(
            category=category,
            confidence=max(0.0, min(1.0, confidence)),
            source="auto",
        )

    def keyword_prediction(self, data: ClassificationInput) -> CategoryPrediction:
        title = _norm(data.title)
        for keywords, category in KEYWORD_RULES:
            if any(k in title for k in keywords):
                return CategoryPrediction(category=category, confidence=KEYWORD_CONFIDENCE, source="default")

        partner = self._partner()
        if partner and partner in title:
            return CategoryPrediction(
                category=EventCategory.SIGNIFICANT_OTHER, confidence=KEYWORD_CONFIDENCE, source="default"
            )

        return CategoryPrediction(category=EventCategory.PERSONAL, confidence=FAILURE_CONFIDENCE, source="default")

    def build_prompt(self, data: ClassificationInput) -> str:
        categories = self.enabled_categories()
        partner = self.settings.significant_other_name or "partner"

        lines = [
            f"Classify this event into one of these categories: {', '.join(c.value for c in categories)}",
            "",
            "Event Details:",
            f'- Title: "{data.title}"',
        ]
        if data.location:
            lines.append(f'- Location: "{data.location}"')
        if data.description:
            lines.append(f'- Description: "{data.description}"')
        if data.attendees:
            lines.append(f"- Attendees: {', '.join(data.attendees)}")
        if data.tags:
            lines.append(f"- Tags: {', '.join(data.tags)}")

        lines += ["", "Classification Rules:"]
        for category in categories:
            lines.append(f'- "{category.value}": {CATEGORY_RULES[category].format(partner=partner)}')

        lines += [
            "",
            "Return ONLY a JSON object:",
            '{"category": "category_name", "confidence": 0.95, "reasoning": "brief explanation"}',
        ]
        return "\n".join(lines)

    # -- events ----------------------------------------------------------------

    async def apply(self, event: EventDraft) -> EventDraft:
        """The event with its category fields filled from a fresh prediction."""
        prediction = await self.classify(ClassificationInput.from_event(event))
        return event.with_prediction(prediction)

    async def reclassify_all(self, events: Iterable[EventDraft]) -> List[EventDraft]:
        results = []
        for event in events:
            # manually categorized events keep their category
            if event.category_source == "manual":
                results.append(event)
                continue
            results.append(await self.apply(event))
        return results
