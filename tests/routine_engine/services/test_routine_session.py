"""
Tests for RoutineSession (queue/cursor execution with branch expansion).

Tests cover:
- Linear execution: completion, skip, progress, exhaustion
- Branch expansion: answers via payload and legacy notes, lazy nesting
- Navigation: go_to_previous, go_to, re-completion after revisiting
- Lifecycle: finalize, cancel, mutations after the session ended
- Listeners: change kinds, unsubscribe, failing listeners
- Depth validation at start
"""

from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest
from conftest import FakeClock, make_conditional, make_habit, make_template

from routine_engine.config.engine import EngineSettings
from routine_engine.lib.exceptions import (
    AlreadyFinalizedError,
    IndexOutOfRangeError,
    NestingDepthExceededError,
    NoCurrentHabitError,
    OptionNotFoundError,
)
from routine_engine.models.completion import Answer, Plain, Skip
from routine_engine.models.template import RoutineTemplate
from routine_engine.services.routine_session import RoutineSession, SessionChange


def _ids(session: RoutineSession) -> list[str]:
    return [h.id for h in session.queue]


@pytest.fixture()
def make_session(clock: FakeClock, settings: EngineSettings):
    def _make(template: RoutineTemplate) -> RoutineSession:
        return RoutineSession(template, clock=clock, settings=settings)

    return _make


# =============================================================================
# Linear execution
# =============================================================================


class TestLinearExecution:
    def test_completing_every_habit_exhausts_queue(self, make_session, plain_template) -> None:
        session = make_session(plain_template)

        for _ in range(3):
            session.complete_current()

        assert len(session.completions) == 3
        assert session.cursor == 3
        assert session.current_habit() is None

    def test_initial_state(self, make_session, plain_template) -> None:
        session = make_session(plain_template)

        assert session.cursor == 0
        assert session.current_habit().id == "H1"
        assert session.progress() == 0.0
        assert session.completions == ()
        assert not session.is_finished()

    def test_inactive_habits_are_not_queued(self, make_session) -> None:
        template = make_template(
            make_habit("H1"), make_habit("H2", is_active=False), make_habit("H3")
        )
        session = make_session(template)

        assert _ids(session) == ["H1", "H3"]

    def test_queue_is_independent_of_template(self, make_session, branching_template) -> None:
        session = make_session(branching_template)
        session.complete_current(payload=Answer("H1:Yes"))

        assert len(session.queue) == 3
        assert len(branching_template.habits) == 1

    def test_completion_records_duration_notes_and_time(
        self, make_session, plain_template, clock: FakeClock
    ) -> None:
        session = make_session(plain_template)
        clock.advance(minutes=2)

        session.complete_current(duration=timedelta(seconds=90), notes="felt good")

        completion = session.completions[0]
        assert completion.habit_id == "H1"
        assert completion.duration == timedelta(seconds=90)
        assert completion.notes == "felt good"
        assert completion.completed_at == clock.now
        assert completion.is_skipped is False

    def test_skip_records_zero_duration(self, make_session, plain_template) -> None:
        session = make_session(plain_template)

        state = session.skip_current()

        assert session.completions[0].is_skipped is True
        assert session.completions[0].duration == timedelta(0)
        assert state.cursor == 1
        assert state.progress == pytest.approx(1 / 3)

    def test_complete_past_end_raises(self, make_session, plain_template) -> None:
        session = make_session(plain_template)
        for _ in range(3):
            session.complete_current()

        with pytest.raises(NoCurrentHabitError):
            session.complete_current()
        with pytest.raises(NoCurrentHabitError):
            session.skip_current()
        assert len(session.completions) == 3

    def test_empty_template(self, make_session) -> None:
        session = make_session(make_template())

        assert session.current_habit() is None
        assert session.progress() == 0.0
        with pytest.raises(NoCurrentHabitError):
            session.complete_current()

    def test_progress_non_decreasing_without_branches(self, make_session, plain_template) -> None:
        session = make_session(plain_template)
        seen = [session.progress()]

        session.complete_current()
        seen.append(session.progress())
        session.skip_current()
        seen.append(session.progress())
        session.complete_current()
        seen.append(session.progress())

        assert seen == sorted(seen)
        assert all(0.0 <= p <= 1.0 for p in seen)
        assert seen[-1] == 1.0

    def test_progress_drops_when_an_answer_inserts_habits(self, make_session) -> None:
        question = make_conditional(
            "Q", "Gym?", {"Yes": [make_habit("G1"), make_habit("G2"), make_habit("G3")], "No": []}
        )
        session = make_session(make_template(make_habit("A"), question))
        session.complete_current()
        assert session.progress() == pytest.approx(0.5)

        session.complete_current(payload=Answer("Q:Yes"))

        assert session.progress() == pytest.approx(2 / 5)
        assert session.progress() < 0.5

    def test_remaining_habits(self, make_session, plain_template) -> None:
        session = make_session(plain_template)
        session.complete_current()

        assert [h.id for h in session.remaining_habits()] == ["H2", "H3"]

    def test_plain_payload_notes_are_recorded(self, make_session, plain_template) -> None:
        session = make_session(plain_template)

        session.complete_current(payload=Plain("from payload"))

        assert session.completions[0].notes == "from payload"


# =============================================================================
# Branch expansion
# =============================================================================


class TestBranchExpansion:
    def test_answer_yes_via_legacy_notes_expands(self, make_session, branching_template) -> None:
        session = make_session(branching_template)

        session.complete_current(notes="Selected: Yes")

        assert _ids(session) == ["H1", "H2", "H3"]
        assert session.cursor == 1
        assert session.current_habit().id == "H2"
        assert session.completions[0].selected_option_id == "H1:Yes"

    def test_answer_no_with_empty_option(self, make_session, branching_template) -> None:
        session = make_session(branching_template)

        session.complete_current(notes="Selected: No")

        assert _ids(session) == ["H1"]
        assert session.cursor == 1
        assert session.current_habit() is None
        assert session.progress() == 1.0

    def test_answer_payload_inserts_contiguously_after_cursor(self, make_session) -> None:
        question = make_conditional(
            "Q", "Where?", {"Gym": [make_habit("G1"), make_habit("G2")], "Home": [make_habit("P1")]}
        )
        session = make_session(make_template(make_habit("A"), question, make_habit("Z")))
        session.complete_current()
        before = len(session.queue)

        session.complete_current(payload=Answer("Q:Gym"))

        assert len(session.queue) == before + 2
        assert _ids(session) == ["A", "Q", "G1", "G2", "Z"]
        assert session.current_habit().id == "G1"

    def test_answer_records_legacy_notes(self, make_session, branching_template) -> None:
        session = make_session(branching_template)

        session.complete_current(payload=Answer("H1:Yes"))

        assert session.completions[0].notes == "Selected: Yes"

    def test_skipping_question_never_expands(self, make_session, branching_template) -> None:
        session = make_session(branching_template)

        session.skip_current()

        assert _ids(session) == ["H1"]
        assert session.current_habit() is None

    def test_skip_payload_does_not_expand(self, make_session, branching_template) -> None:
        session = make_session(branching_template)

        session.complete_current(notes="Skipped")

        assert _ids(session) == ["H1"]
        assert session.completions[0].notes == "Skipped"
        assert session.completions[0].selected_option_id is None

    def test_explicit_skip_payload_writes_sentinel(self, make_session, branching_template) -> None:
        session = make_session(branching_template)

        session.complete_current(payload=Skip())

        assert session.completions[0].notes == "Skipped"
        assert len(session.queue) == 1

    def test_unknown_option_text_is_plain_completion(
        self, make_session, branching_template
    ) -> None:
        session = make_session(branching_template)

        session.complete_current(notes="Selected: Maybe")

        assert _ids(session) == ["H1"]
        assert session.completions[0].notes == "Selected: Maybe"
        assert session.completions[0].selected_option_id is None

    def test_unknown_option_id_raises_and_mutates_nothing(
        self, make_session, branching_template
    ) -> None:
        session = make_session(branching_template)

        with pytest.raises(OptionNotFoundError):
            session.complete_current(payload=Answer("nope"))

        assert session.cursor == 0
        assert session.completions == ()

    def test_answer_on_non_conditional_raises(self, make_session, plain_template) -> None:
        session = make_session(plain_template)

        with pytest.raises(OptionNotFoundError):
            session.complete_current(payload=Answer("H1:Yes"))

    def test_single_option_conditional_is_not_expanded(self, make_session) -> None:
        lonely = make_conditional("Q", "Only one?", {"Sure": [make_habit("X")]})
        session = make_session(make_template(lonely))

        session.complete_current(payload=Answer("Q:Sure"))

        assert _ids(session) == ["Q"]
        assert session.completions[0].selected_option_id == "Q:Sure"

    def test_nested_conditional_expands_lazily(self, make_session) -> None:
        inner = make_conditional(
            "Inner", "Cardio?", {"Run": [make_habit("R")], "Bike": [make_habit("B")]}
        )
        outer = make_conditional("Outer", "Gym?", {"Yes": [inner, make_habit("Stretch")], "No": []})
        session = make_session(make_template(outer, make_habit("End")))

        session.complete_current(payload=Answer("Outer:Yes"))
        assert _ids(session) == ["Outer", "Inner", "Stretch", "End"]

        session.complete_current(payload=Answer("Inner:Bike"))
        assert _ids(session) == ["Outer", "Inner", "B", "Stretch", "End"]
        assert session.current_habit().id == "B"

    def test_navigation_does_not_re_expand(self, make_session, branching_template) -> None:
        session = make_session(branching_template)
        session.complete_current(payload=Answer("H1:Yes"))

        session.go_to_previous()
        session.go_to(2)
        session.go_to(0)

        assert _ids(session) == ["H1", "H2", "H3"]

    def test_answering_again_after_going_back_expands_again(
        self, make_session, branching_template
    ) -> None:
        session = make_session(branching_template)
        session.complete_current(payload=Answer("H1:Yes"))
        session.go_to_previous()

        session.complete_current(payload=Answer("H1:Yes"))

        assert _ids(session) == ["H1", "H2", "H3", "H2", "H3"]
        assert len(session.completions) == 2


# =============================================================================
# Navigation
# =============================================================================


class TestNavigation:
    def test_go_to_previous_at_start_is_noop(self, make_session, plain_template) -> None:
        session = make_session(plain_template)
        events: list[SessionChange] = []
        session.subscribe(events.append)

        state = session.go_to_previous()

        assert state.cursor == 0
        assert events == []

    def test_go_to_previous_keeps_completions(self, make_session, plain_template) -> None:
        session = make_session(plain_template)
        session.complete_current()

        session.go_to_previous()

        assert session.cursor == 0
        assert len(session.completions) == 1
        assert session.has_completion("H1")

    def test_recompleting_appends(self, make_session, plain_template) -> None:
        session = make_session(plain_template)
        session.complete_current()
        session.go_to_previous()

        session.complete_current()

        assert [c.habit_id for c in session.completions] == ["H1", "H1"]
        assert session.completed_habit_ids() == {"H1"}
        assert session.cursor == 1

    def test_progress_is_clamped(self, make_session) -> None:
        session = make_session(make_template(make_habit("H1")))
        session.complete_current()
        session.go_to_previous()
        session.complete_current()

        assert session.progress() == 1.0

    def test_go_to_valid_index(self, make_session, plain_template) -> None:
        session = make_session(plain_template)

        state = session.go_to(2)

        assert state.cursor == 2
        assert state.current_habit.id == "H3"

    @pytest.mark.parametrize("index", [-1, 3, 100])
    def test_go_to_invalid_index_raises_and_mutates_nothing(
        self, make_session, plain_template, index: int
    ) -> None:
        session = make_session(plain_template)
        session.complete_current()

        with pytest.raises(IndexOutOfRangeError) as exc_info:
            session.go_to(index)

        assert exc_info.value.index == index
        assert exc_info.value.size == 3
        assert session.cursor == 1

    def test_go_to_on_empty_queue_raises(self, make_session) -> None:
        session = make_session(make_template())

        with pytest.raises(IndexOutOfRangeError):
            session.go_to(0)


# =============================================================================
# Lifecycle
# =============================================================================


class TestLifecycle:
    def test_finalize_sets_completed_at(
        self, make_session, plain_template, clock: FakeClock
    ) -> None:
        session = make_session(plain_template)
        clock.advance(minutes=10)

        state = session.finalize_complete()

        assert state.is_completed
        assert session.completed_at == clock.now
        assert session.elapsed() == timedelta(minutes=10)

    def test_finalize_early_is_allowed(self, make_session, plain_template) -> None:
        session = make_session(plain_template)
        session.complete_current()

        session.finalize_complete()

        assert session.summary().completed_count == 1
        assert session.summary().total_habits == 3

    def test_second_finalize_raises(self, make_session, plain_template) -> None:
        session = make_session(plain_template)
        session.finalize_complete()

        with pytest.raises(AlreadyFinalizedError):
            session.finalize_complete()

    @pytest.mark.parametrize(
        "operation",
        [
            lambda s: s.complete_current(),
            lambda s: s.skip_current(),
            lambda s: s.go_to_previous(),
            lambda s: s.go_to(0),
            lambda s: s.cancel(),
        ],
    )
    def test_mutations_after_finalize_raise(self, make_session, plain_template, operation) -> None:
        session = make_session(plain_template)
        session.finalize_complete()

        with pytest.raises(AlreadyFinalizedError):
            operation(session)

    def test_cancel_discards_completions(self, make_session, plain_template) -> None:
        session = make_session(plain_template)
        session.complete_current()
        session.skip_current()

        state = session.cancel()

        assert state.is_cancelled
        assert session.completions == ()
        assert session.summary().was_cancelled
        with pytest.raises(AlreadyFinalizedError):
            session.complete_current()

    def test_summary_counts(self, make_session, plain_template) -> None:
        session = make_session(plain_template)
        session.complete_current()
        session.skip_current()
        session.complete_current()
        session.finalize_complete()

        summary = session.summary()

        assert summary.template_name == "Morning"
        assert summary.completed_count == 2
        assert summary.skipped_count == 1
        assert summary.progress == 1.0
        assert summary.was_cancelled is False

    def test_explicit_session_id(self, clock, settings, plain_template) -> None:
        session = RoutineSession(plain_template, clock=clock, settings=settings, session_id="s-1")

        assert session.id == "s-1"
        assert session.state().session_id == "s-1"


# =============================================================================
# Listeners
# =============================================================================


class TestListeners:
    def test_expansion_emits_queue_then_cursor_change(
        self, make_session, branching_template
    ) -> None:
        session = make_session(branching_template)
        events: list[SessionChange] = []
        session.subscribe(events.append)

        session.complete_current(payload=Answer("H1:Yes"))

        assert events == [SessionChange.QUEUE_CHANGED, SessionChange.CURSOR_CHANGED]

    def test_plain_completion_emits_cursor_change_only(
        self, make_session, branching_template
    ) -> None:
        session = make_session(branching_template)
        events: list[SessionChange] = []
        session.subscribe(events.append)

        session.complete_current(payload=Answer("H1:No"))

        assert events == [SessionChange.CURSOR_CHANGED]

    def test_finalize_and_cancel_events(self, make_session, plain_template) -> None:
        first = make_session(plain_template)
        second = make_session(plain_template)
        events: list[SessionChange] = []
        first.subscribe(events.append)
        second.subscribe(events.append)

        first.finalize_complete()
        second.cancel()

        assert events == [SessionChange.FINALIZED, SessionChange.CANCELLED]

    def test_listener_sees_consistent_state(self, make_session, branching_template) -> None:
        session = make_session(branching_template)
        seen: list[tuple[int, int]] = []
        session.subscribe(lambda _change: seen.append((session.cursor, len(session.queue))))

        session.complete_current(payload=Answer("H1:Yes"))

        assert seen == [(1, 3), (1, 3)]

    def test_unsubscribe(self, make_session, plain_template) -> None:
        session = make_session(plain_template)
        events: list[SessionChange] = []
        unsubscribe = session.subscribe(events.append)

        unsubscribe()
        session.complete_current()

        assert events == []

    def test_failing_listener_does_not_block_others(self, make_session, plain_template) -> None:
        session = make_session(plain_template)
        events: list[SessionChange] = []

        def broken(_change: SessionChange) -> None:
            raise RuntimeError("listener exploded")

        session.subscribe(broken)
        session.subscribe(events.append)

        state = session.complete_current()

        assert events == [SessionChange.CURSOR_CHANGED]
        assert state.cursor == 1

    def test_go_to_same_index_emits_nothing(self, make_session, plain_template) -> None:
        session = make_session(plain_template)
        events: list[SessionChange] = []
        session.subscribe(events.append)

        session.go_to(0)

        assert events == []


# =============================================================================
# Depth validation
# =============================================================================


def _nested(levels: int) -> RoutineTemplate:
    """A template whose deepest conditional sits at ``levels``."""
    habit = make_conditional(f"Q{levels}", "Deepest?", {"A": [make_habit("leaf")], "B": []})
    for level in range(levels - 1, -1, -1):
        habit = make_conditional(f"Q{level}", "Deeper?", {"A": [habit], "B": []})
    return make_template(habit)


class TestDepthValidation:
    def test_max_depth_is_accepted(self, make_session) -> None:
        session = make_session(_nested(2))

        assert session.current_habit().id == "Q0"

    def test_over_deep_template_is_rejected(self, make_session) -> None:
        template = _nested(3)

        with pytest.raises(NestingDepthExceededError) as exc_info:
            make_session(template)

        assert exc_info.value.depth == 3
        assert exc_info.value.max_depth == 2
        assert exc_info.value.template_id == template.id

    def test_validation_can_be_disabled(self, clock) -> None:
        settings = EngineSettings(validate_depth_on_start=False)

        session = RoutineSession(_nested(5), clock=clock, settings=settings)

        assert session.current_habit().id == "Q0"

    def test_custom_max_depth(self, clock) -> None:
        settings = EngineSettings(max_conditional_depth=0)

        with pytest.raises(NestingDepthExceededError):
            RoutineSession(_nested(1), clock=clock, settings=settings)

    def test_inactive_over_deep_habit_is_ignored(self, make_session) -> None:
        deep = _nested(3).habits[0]
        inactive = make_conditional("Off", "Off?", {"A": [deep], "B": []})
        template = make_template(make_habit("H1"), replace(inactive, is_active=False))

        session = make_session(template)

        assert _ids(session) == ["H1"]
