"""
Context Selector for the Routine Engine.

Picks the routine template that best fits the current context snapshot.

Rules:
- Only templates with a context rule take part; templates without one are
  reachable through explicit choice only.
- A rule matches when each of its three dimensions (time slot, day
  category, location) is a wildcard or contains the snapshot's value.
- Among matches, the highest priority wins. Equal priorities are resolved
  by catalog order: the template that comes first in the given sequence.
- No match is a normal outcome (None); falling back to a default or
  recently used template is up to the caller.

Everything here is a pure function of its arguments: no I/O, no shared
state, safe to call from several readers at once.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from routine_engine.models.context import UNKNOWN_LOCATION, ContextSnapshot, TimeSlot
from routine_engine.models.template import RoutineTemplate

NO_MATCH_REASON = "No matching routine found"


@dataclass(frozen=True)
class RankedTemplate:
    """A matching template with the values it was ranked by.

    Attributes:
        template: The matching template.
        priority: Its rule's priority.
        specificity: Non-wildcard dimensions that matched (0-3).
        catalog_index: Position in the candidate sequence.
    """

    template: RoutineTemplate
    priority: int
    specificity: int
    catalog_index: int


@dataclass(frozen=True)
class SelectionResult:
    """The selected template (or None) and a human-readable reason."""

    template: RoutineTemplate | None
    reason: str

    @property
    def matched(self) -> bool:
        return self.template is not None


def rank(snapshot: ContextSnapshot, templates: Sequence[RoutineTemplate]) -> list[RankedTemplate]:
    """All matching templates, best first (priority desc, then catalog order)."""
    ranked: list[RankedTemplate] = []
    for index, template in enumerate(templates):
        rule = template.context_rule
        if rule is None or not rule.matches(snapshot):
            continue
        ranked.append(
            RankedTemplate(
                template=template,
                priority=rule.priority,
                specificity=rule.specificity(snapshot),
                catalog_index=index,
            )
        )
    ranked.sort(key=lambda r: (-r.priority, r.catalog_index))
    return ranked


def select(
    snapshot: ContextSnapshot,
    templates: Sequence[RoutineTemplate],
) -> RoutineTemplate | None:
    """Best matching template for the snapshot, or None."""
    ranked = rank(snapshot, templates)
    return ranked[0].template if ranked else None


def select_with_reason(
    snapshot: ContextSnapshot,
    templates: Sequence[RoutineTemplate],
) -> SelectionResult:
    """Like select(), with an explanation suitable for display."""
    template = select(snapshot, templates)
    if template is None:
        return SelectionResult(template=None, reason=NO_MATCH_REASON)
    return SelectionResult(template=template, reason=build_selection_reason(template, snapshot))


def default_template(templates: Sequence[RoutineTemplate]) -> RoutineTemplate | None:
    """First template flagged ``is_default``, for callers falling back after no match."""
    for template in templates:
        if template.is_default:
            return template
    return None


def build_selection_reason(template: RoutineTemplate, snapshot: ContextSnapshot) -> str:
    """E.g. "Selected 'Home Office' because it's morning and it's a weekday and you're at home"."""
    reasons = [f"it's {_time_slot_label(snapshot.time_slot)}"]

    if snapshot.day_category_id == "weekend":
        reasons.append("it's the weekend")
    elif snapshot.day_category_id == "weekday":
        reasons.append("it's a weekday")
    else:
        reasons.append(f"it's a {snapshot.day_category_id.replace('_', ' ')} day")

    if snapshot.location_id != UNKNOWN_LOCATION:
        reasons.append(f"you're at {snapshot.location_id.replace('_', ' ')}")

    return f"Selected '{template.name}' because {' and '.join(reasons)}"


def _time_slot_label(time_slot: str) -> str:
    try:
        return TimeSlot(time_slot).display_name.lower()
    except ValueError:
        return time_slot.replace("_", " ")


__all__ = [
    "NO_MATCH_REASON",
    "RankedTemplate",
    "SelectionResult",
    "rank",
    "select",
    "select_with_reason",
    "default_template",
    "build_selection_reason",
]
