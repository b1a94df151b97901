"""Brew session: the draft shot and the results shown alongside it.

Search and advice requests take a token from ``begin()``. A result is only
stored if its token is still current; starting a new coffee or repeating a
shot invalidates outstanding tokens so late responses are dropped.
"""

import math
from typing import Optional

from models import AdviceResult, SearchRecommendation, ShotDraft, ShotRecord
from logging_config import get_logger

logger = get_logger()

SEARCH = "search"
ADVICE = "advice"

SEARCH_FAILED_NOTICE = "Search was not successful."
MISSING_KEY_NOTICE = "Gemini API key is missing. Add it in the settings to get search results and advice."


class BrewSession:
    def __init__(self):
        self._generations = {SEARCH: 0, ADVICE: 0}
        self.draft = ShotDraft()
        self.search_query = ""
        self.recommendation: Optional[SearchRecommendation] = None
        self.advice: Optional[AdviceResult] = None
        self.notice: Optional[str] = None

    # Request identity

    def begin(self, kind: str) -> int:
        """Start a request of ``kind`` and return its token."""
        self._generations[kind] += 1
        return self._generations[kind]

    def is_current(self, kind: str, token: int) -> bool:
        return self._generations[kind] == token

    def invalidate(self, kind: str) -> None:
        self._generations[kind] += 1

    def accept_search(self, token: int, query: str, recommendation: SearchRecommendation) -> bool:
        if not self.is_current(SEARCH, token):
            logger.info("Discarding stale search result", extra={"query": query})
            return False
        self.search_query = query
        self.recommendation = recommendation
        if not recommendation.found and not recommendation.sources:
            self.notice = recommendation.description or SEARCH_FAILED_NOTICE
        else:
            self.notice = None
        return True

    def accept_advice(self, token: int, advice: AdviceResult) -> bool:
        if not self.is_current(ADVICE, token):
            logger.info("Discarding stale advice result")
            return False
        self.advice = advice
        return True

    def report_missing_key(self) -> None:
        self.notice = MISSING_KEY_NOTICE

    def dismiss_notice(self) -> None:
        self.notice = None

    # Draft workflow

    def new_coffee(self) -> None:
        """Start over with a fresh draft for a different coffee."""
        self.invalidate(SEARCH)
        self.invalidate(ADVICE)
        self.draft = ShotDraft()
        self.search_query = ""
        self.recommendation = None
        self.advice = None
        self.notice = None

    def repeat_shot(self) -> None:
        """Pull another shot of the same coffee with the current draft."""
        self.invalidate(ADVICE)
        self.advice = None
        self.notice = None

    def apply_recommendation(self) -> ShotDraft:
        """Pre-fill the draft from the current search result.

        Each field keeps its current draft value unless the recommendation
        provides one. A fractional time is rounded half up (26.5 s -> 27 s).
        """
        updates = {"bean_name": self.search_query}
        recommendation = self.recommendation
        if recommendation is not None and recommendation.found:
            if recommendation.dose is not None:
                updates["dose"] = recommendation.dose
            if recommendation.yield_ is not None:
                updates["yield_"] = recommendation.yield_
            if recommendation.time is not None:
                updates["time"] = int(math.floor(recommendation.time + 0.5))
            if recommendation.machine_setting is not None:
                updates["machine_setting"] = recommendation.machine_setting
        self.draft = self.draft.model_copy(update=updates)
        return self.draft

    def set_extraction_time(self, seconds: int) -> None:
        """Receive the stopped timer's extraction seconds."""
        self.draft.time = seconds

    def update_draft(self, fields: dict) -> ShotDraft:
        """Validate and apply a partial draft update.

        Accepts ``yield`` or ``yield_``; unknown fields are rejected.
        """
        fields = dict(fields)
        if "yield_" in fields:
            fields["yield"] = fields.pop("yield_")
        current = self.draft.model_dump(by_alias=True)
        merged = {**current, **fields}
        if isinstance(fields.get("flavor"), dict):
            merged["flavor"] = {**current["flavor"], **fields["flavor"]}
        self.draft = ShotDraft.model_validate(merged)
        return self.draft

    def submit(self) -> ShotRecord:
        """Freeze the draft into a shot. Advice from earlier shots is dropped."""
        shot = self.draft.to_shot()
        self.invalidate(ADVICE)
        self.advice = None
        return shot

    def to_dict(self) -> dict:
        return {
            "draft": self.draft.model_dump(mode="json", by_alias=True),
            "search_query": self.search_query,
            "recommendation": (
                self.recommendation.model_dump(mode="json", by_alias=True)
                if self.recommendation else None
            ),
            "advice": self.advice.model_dump() if self.advice else None,
            "notice": self.notice,
        }


_brew_session: Optional[BrewSession] = None


def get_brew_session() -> BrewSession:
    global _brew_session
    if _brew_session is None:
        _brew_session = BrewSession()
    return _brew_session


def reset_brew_session() -> None:
    global _brew_session
    _brew_session = None
