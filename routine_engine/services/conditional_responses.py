"""
Conditional Response Log for the Routine Engine.

Keeps the answers users gave to conditional habit questions, in memory,
and derives per-option statistics and overall analytics from them.

At most one response is kept per (habit, session): answering the same
question again in the same session (after navigating back) replaces the
earlier answer. Persisting the log is the storage layer's job.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime

from routine_engine.models.completion import ConditionalResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptionStatistics:
    """How often one option of a conditional habit was chosen.

    Attributes:
        option_id: The option's id.
        option_text: The option's text as recorded at answer time.
        selection_count: Number of answers choosing this option.
        selection_percentage: Share of non-skipped answers, 0-100.
        last_selected: Timestamp of the most recent selection.
    """

    option_id: str
    option_text: str
    selection_count: int
    selection_percentage: float
    last_selected: datetime


@dataclass(frozen=True)
class ResponseAnalytics:
    """Aggregate numbers over every recorded response."""

    total_responses: int = 0
    answered_responses: int = 0
    skipped_responses: int = 0
    unique_habits_answered: int = 0
    unique_sessions_with_responses: int = 0
    average_responses_per_habit: float = 0.0
    skip_rate: float = 0.0
    last_response_at: datetime | None = None


class ConditionalResponseLog:
    """In-memory log of conditional habit responses."""

    def __init__(self) -> None:
        self._responses: list[ConditionalResponse] = []

    def __len__(self) -> int:
        return len(self._responses)

    @property
    def responses(self) -> tuple[ConditionalResponse, ...]:
        return tuple(self._responses)

    def record(self, response: ConditionalResponse) -> None:
        """Record a response, replacing any earlier one for the same habit and session."""
        self._responses = [
            r
            for r in self._responses
            if not (r.habit_id == response.habit_id and r.session_id == response.session_id)
        ]
        self._responses.append(response)
        logger.info(
            "conditional_response_recorded habit=%s option=%s skipped=%s",
            response.habit_id,
            response.selected_option_text,
            response.was_skipped,
        )

    def latest_for(self, habit_id: str) -> ConditionalResponse | None:
        """Most recent response for a habit across all sessions."""
        matches = [r for r in self._responses if r.habit_id == habit_id]
        if not matches:
            return None
        return max(matches, key=lambda r: r.timestamp)

    def for_session(self, session_id: str) -> list[ConditionalResponse]:
        """Responses of one session, oldest first."""
        return sorted(
            (r for r in self._responses if r.session_id == session_id),
            key=lambda r: r.timestamp,
        )

    def history(self, habit_id: str, limit: int = 20) -> list[ConditionalResponse]:
        """Responses for a habit, newest first, at most ``limit``."""
        matches = sorted(
            (r for r in self._responses if r.habit_id == habit_id),
            key=lambda r: r.timestamp,
            reverse=True,
        )
        return matches[:limit]

    def option_statistics(self, habit_id: str) -> list[OptionStatistics]:
        """Selection counts per option for a habit, most chosen first. Skips are excluded."""
        answered = [r for r in self._responses if r.habit_id == habit_id and not r.was_skipped]
        if not answered:
            return []

        grouped: dict[str, list[ConditionalResponse]] = defaultdict(list)
        for response in answered:
            grouped[response.selected_option_id or ""].append(response)

        stats = [
            OptionStatistics(
                option_id=option_id,
                option_text=group[0].selected_option_text,
                selection_count=len(group),
                selection_percentage=len(group) / len(answered) * 100,
                last_selected=max(r.timestamp for r in group),
            )
            for option_id, group in grouped.items()
        ]
        stats.sort(key=lambda s: s.selection_count, reverse=True)
        return stats

    def analytics(self) -> ResponseAnalytics:
        total = len(self._responses)
        if total == 0:
            return ResponseAnalytics()

        skipped = sum(1 for r in self._responses if r.was_skipped)
        unique_habits = len({r.habit_id for r in self._responses})
        return ResponseAnalytics(
            total_responses=total,
            answered_responses=total - skipped,
            skipped_responses=skipped,
            unique_habits_answered=unique_habits,
            unique_sessions_with_responses=len({r.session_id for r in self._responses}),
            average_responses_per_habit=total / unique_habits,
            skip_rate=skipped / total,
            last_response_at=max(r.timestamp for r in self._responses),
        )

    def clear(self) -> None:
        self._responses.clear()
        logger.info("conditional_responses_cleared")


__all__ = ["OptionStatistics", "ResponseAnalytics", "ConditionalResponseLog"]
