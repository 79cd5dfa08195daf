"""
Tests for the Context Selector.

Tests cover:
- Conjunctive wildcard matching across the three dimensions
- Priority ordering and catalog-order tie-break
- Templates without a context rule
- Selection reasons
"""

from __future__ import annotations

import pytest
from conftest import make_habit, make_template

from routine_engine.models.context import ContextSnapshot
from routine_engine.models.template import RoutineContextRule, RoutineTemplate
from routine_engine.services.context_selector import (
    NO_MATCH_REASON,
    build_selection_reason,
    default_template,
    rank,
    select,
    select_with_reason,
)

HOME_WEEKDAY_MORNING = ContextSnapshot(
    time_slot="morning", day_category_id="weekday", location_id="home"
)


def _template(name: str, **rule: object) -> RoutineTemplate:
    return make_template(
        make_habit(f"{name}-habit"), name=name, context_rule=RoutineContextRule(**rule)
    )


@pytest.fixture()
def t1() -> RoutineTemplate:
    return _template("T1", time_slots={"morning"}, location_ids={"home"}, priority=5)


@pytest.fixture()
def t2() -> RoutineTemplate:
    return _template("T2", day_category_ids={"weekday"}, priority=3)


class TestSelect:
    def test_higher_priority_wins(self, t1, t2) -> None:
        assert select(HOME_WEEKDAY_MORNING, [t2, t1]) is t1

    def test_time_slot_mismatch_selects_nothing(self, t1) -> None:
        evening = ContextSnapshot("evening", "weekday", "home")

        assert select(evening, [t1]) is None

    def test_empty_catalog(self) -> None:
        assert select(HOME_WEEKDAY_MORNING, []) is None

    def test_template_without_rule_is_never_selected(self) -> None:
        assert select(HOME_WEEKDAY_MORNING, [make_template(make_habit("H1"))]) is None

    def test_all_wildcard_rule_matches_everything(self) -> None:
        anything = _template("Any")

        assert select(ContextSnapshot("night", "weekend"), [anything]) is anything

    @pytest.mark.parametrize(
        "snapshot",
        [
            ContextSnapshot("evening", "weekday", "home"),
            ContextSnapshot("morning", "weekend", "home"),
            ContextSnapshot("morning", "weekday", "office"),
        ],
    )
    def test_every_dimension_must_match(self, snapshot: ContextSnapshot) -> None:
        strict = _template(
            "Strict", time_slots={"morning"}, day_category_ids={"weekday"}, location_ids={"home"}
        )

        assert select(snapshot, [strict]) is None

    def test_unknown_location_only_matches_wildcard(self) -> None:
        at_home = _template("Home", location_ids={"home"})
        anywhere = _template("Anywhere")
        snapshot = ContextSnapshot("morning", "weekday")

        assert select(snapshot, [at_home, anywhere]) is anywhere

    def test_equal_priority_resolved_by_catalog_order(self) -> None:
        first = _template("First", time_slots={"morning"}, priority=1)
        second = _template("Second", day_category_ids={"weekday"}, priority=1)

        assert select(HOME_WEEKDAY_MORNING, [first, second]) is first
        assert select(HOME_WEEKDAY_MORNING, [second, first]) is second

    def test_result_is_always_a_matching_template(self, t1, t2) -> None:
        catalog = [t1, t2, _template("Night", time_slots={"night"}, priority=99)]

        chosen = select(HOME_WEEKDAY_MORNING, catalog)

        assert chosen is not None
        assert chosen.context_rule.matches(HOME_WEEKDAY_MORNING)

    def test_custom_time_slot_and_day_category(self) -> None:
        travel = _template("Travel", time_slots={"siesta"}, day_category_ids={"travel"})

        assert select(ContextSnapshot("siesta", "travel"), [travel]) is travel


class TestRank:
    def test_rank_orders_by_priority_then_catalog(self, t1, t2) -> None:
        low = _template("Low", priority=0)
        tied = _template("Tied", location_ids={"home"}, priority=3)

        ranked = rank(HOME_WEEKDAY_MORNING, [low, t2, tied, t1])

        assert [r.template.name for r in ranked] == ["T1", "T2", "Tied", "Low"]
        assert [r.catalog_index for r in ranked] == [3, 1, 2, 0]

    def test_rank_reports_specificity(self, t1, t2) -> None:
        ranked = rank(HOME_WEEKDAY_MORNING, [t1, t2])

        assert ranked[0].specificity == 2
        assert ranked[1].specificity == 1

    def test_rank_excludes_non_matching(self, t1) -> None:
        assert rank(ContextSnapshot("evening", "weekday", "home"), [t1]) == []


class TestSelectionReason:
    def test_reason_mentions_every_known_dimension(self, t1) -> None:
        result = select_with_reason(HOME_WEEKDAY_MORNING, [t1])

        assert result.matched
        assert result.template is t1
        assert result.reason == (
            "Selected 'T1' because it's morning and it's a weekday and you're at home"
        )

    def test_reason_for_weekend_without_location(self) -> None:
        anything = _template("Lazy Sunday")

        reason = build_selection_reason(anything, ContextSnapshot("late_morning", "weekend"))

        assert reason == "Selected 'Lazy Sunday' because it's late morning and it's the weekend"

    def test_reason_for_custom_values(self) -> None:
        anything = _template("Trip")

        reason = build_selection_reason(
            anything, ContextSnapshot("siesta", "work_trip", "hotel_room")
        )

        assert reason == (
            "Selected 'Trip' because it's siesta and it's a work trip day and you're at hotel room"
        )

    def test_no_match_reason(self, t1) -> None:
        result = select_with_reason(ContextSnapshot("night", "weekend"), [t1])

        assert not result.matched
        assert result.template is None
        assert result.reason == NO_MATCH_REASON


class TestDefaultTemplate:
    def test_first_default_wins(self) -> None:
        plain = make_template(make_habit("H1"), name="Plain")
        first = make_template(make_habit("H2"), name="First", is_default=True)
        second = make_template(make_habit("H3"), name="Second", is_default=True)

        assert default_template([plain, first, second]) is first

    def test_no_default(self) -> None:
        assert default_template([make_template(make_habit("H1"))]) is None
