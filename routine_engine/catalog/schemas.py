"""
Pydantic Schemas for the Routine Engine template catalog.

The storage layer hands the engine its template catalog as plain data
(dicts decoded from whatever format it stores). These schemas validate that
payload and convert it into the engine's immutable domain types.

Habit kinds are a discriminated union on ``type``:
    {"type": "task", "subtasks": [...]}
    {"type": "timer", "duration_seconds": 600}
    {"type": "external_action", "target": "...", "title": "..."}
    {"type": "tracking", "mode": "counter", "items": [...]}
    {"type": "guided_sequence", "steps": [{"name": ..., "duration_seconds": ...}]}
    {"type": "conditional", "question": "...", "options": [...]}
"""

from __future__ import annotations

from datetime import timedelta
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, field_validator

from routine_engine.config.engine import MAX_CONDITIONAL_OPTIONS
from routine_engine.models.habit import (
    ConditionalKind,
    ConditionalOption,
    ExternalActionKind,
    GuidedSequenceKind,
    Habit,
    HabitKind,
    SequenceStep,
    TaskKind,
    TimerKind,
    TrackingKind,
    TrackingMode,
)
from routine_engine.models.template import RoutineContextRule, RoutineTemplate

# =============================================================================
# Habit Kind Schemas
# =============================================================================


class TaskKindSchema(BaseModel):
    type: Literal["task"] = "task"
    subtasks: list[str] = Field(default_factory=list)

    def to_domain(self) -> TaskKind:
        return TaskKind(subtasks=tuple(self.subtasks))


class TimerKindSchema(BaseModel):
    type: Literal["timer"] = "timer"
    duration_seconds: float = Field(300, gt=0)

    def to_domain(self) -> TimerKind:
        return TimerKind(duration=timedelta(seconds=self.duration_seconds))


class ExternalActionKindSchema(BaseModel):
    type: Literal["external_action"] = "external_action"
    target: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)

    def to_domain(self) -> ExternalActionKind:
        return ExternalActionKind(target=self.target, title=self.title)


class TrackingKindSchema(BaseModel):
    type: Literal["tracking"] = "tracking"
    mode: TrackingMode = TrackingMode.COUNTER
    items: list[str] = Field(default_factory=list)
    unit: str | None = None

    def to_domain(self) -> TrackingKind:
        return TrackingKind(mode=self.mode, items=tuple(self.items), unit=self.unit)


class SequenceStepSchema(BaseModel):
    id: str | None = None
    name: str = Field(..., min_length=1)
    duration_seconds: float = Field(..., gt=0)
    instructions: str | None = None

    def to_domain(self) -> SequenceStep:
        fields: dict[str, Any] = {
            "name": self.name,
            "duration": timedelta(seconds=self.duration_seconds),
            "instructions": self.instructions,
        }
        if self.id is not None:
            fields["id"] = self.id
        return SequenceStep(**fields)


class GuidedSequenceKindSchema(BaseModel):
    type: Literal["guided_sequence"] = "guided_sequence"
    steps: list[SequenceStepSchema] = Field(default_factory=list)

    def to_domain(self) -> GuidedSequenceKind:
        return GuidedSequenceKind(steps=tuple(s.to_domain() for s in self.steps))


class ConditionalOptionSchema(BaseModel):
    id: str | None = None
    text: str = Field(..., min_length=1, max_length=50)
    habits: list[HabitSchema] = Field(default_factory=list)

    def to_domain(self) -> ConditionalOption:
        habits = tuple(h.to_domain() for h in self.habits)
        if self.id is None:
            return ConditionalOption(text=self.text, habits=habits)
        return ConditionalOption(text=self.text, habits=habits, id=self.id)


class ConditionalKindSchema(BaseModel):
    type: Literal["conditional"] = "conditional"
    question: str = Field(..., min_length=1, max_length=200)
    options: list[ConditionalOptionSchema] = Field(
        default_factory=list, max_length=MAX_CONDITIONAL_OPTIONS
    )

    @field_validator("options")
    @classmethod
    def option_texts_unique(cls, v: list[ConditionalOptionSchema]) -> list[ConditionalOptionSchema]:
        texts = [o.text.strip().lower() for o in v]
        if len(texts) != len(set(texts)):
            raise ValueError("Option texts must be unique")
        return v

    def to_domain(self) -> ConditionalKind:
        return ConditionalKind(
            question=self.question,
            options=tuple(o.to_domain() for o in self.options),
        )


HabitKindSchema = Annotated[
    TaskKindSchema
    | TimerKindSchema
    | ExternalActionKindSchema
    | TrackingKindSchema
    | GuidedSequenceKindSchema
    | ConditionalKindSchema,
    Field(discriminator="type"),
]


# =============================================================================
# Habit / Template Schemas
# =============================================================================


class HabitSchema(BaseModel):
    """A habit as supplied by the catalog."""

    id: str | None = None
    name: str = Field(..., min_length=1, max_length=100)
    kind: HabitKindSchema = Field(default_factory=TaskKindSchema)
    order: int = 0
    is_active: bool = True
    is_optional: bool = False
    color: str = "#007AFF"
    notes: str | None = None

    @field_validator("color")
    @classmethod
    def color_is_hex(cls, v: str) -> str:
        digits = v.removeprefix("#")
        if len(digits) not in (3, 6, 8) or any(c not in "0123456789abcdefABCDEF" for c in digits):
            raise ValueError(f"Invalid hex color: {v}")
        return v

    def to_domain(self) -> Habit:
        kind: HabitKind = self.kind.to_domain()
        fields: dict[str, Any] = {
            "name": self.name,
            "kind": kind,
            "order": self.order,
            "is_active": self.is_active,
            "is_optional": self.is_optional,
            "color": self.color,
            "notes": self.notes,
        }
        if self.id is not None:
            fields["id"] = self.id
        return Habit(**fields)


class ContextRuleSchema(BaseModel):
    time_slots: list[str] = Field(default_factory=list)
    day_category_ids: list[str] = Field(default_factory=list)
    location_ids: list[str] = Field(default_factory=list)
    priority: int = 0

    def to_domain(self) -> RoutineContextRule:
        return RoutineContextRule(
            time_slots=frozenset(self.time_slots),
            day_category_ids=frozenset(self.day_category_ids),
            location_ids=frozenset(self.location_ids),
            priority=self.priority,
        )


class TemplateSchema(BaseModel):
    id: str | None = None
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    color: str = "#34C759"
    is_default: bool = False
    habits: list[HabitSchema] = Field(default_factory=list)
    context_rule: ContextRuleSchema | None = None

    def to_domain(self) -> RoutineTemplate:
        # Authoring order is the default list order
        habits = sorted((h.to_domain() for h in self.habits), key=lambda h: h.order)
        fields: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "color": self.color,
            "is_default": self.is_default,
            "habits": tuple(habits),
            "context_rule": self.context_rule.to_domain() if self.context_rule else None,
        }
        if self.id is not None:
            fields["id"] = self.id
        return RoutineTemplate(**fields)


class CatalogSchema(BaseModel):
    templates: list[TemplateSchema] = Field(default_factory=list)

    def to_domain(self) -> list[RoutineTemplate]:
        return [t.to_domain() for t in self.templates]


# Resolve the recursive HabitSchema <-> ConditionalOptionSchema references
for _schema in (
    ConditionalOptionSchema,
    ConditionalKindSchema,
    HabitSchema,
    TemplateSchema,
    CatalogSchema,
):
    _schema.model_rebuild()


def load_catalog(payload: dict[str, Any]) -> list[RoutineTemplate]:
    """Validate a catalog payload and return its templates in catalog order.

    Raises:
        pydantic.ValidationError: If the payload does not match the schema.
    """
    return CatalogSchema.model_validate(payload).to_domain()


__all__ = [
    "TaskKindSchema",
    "TimerKindSchema",
    "ExternalActionKindSchema",
    "TrackingKindSchema",
    "SequenceStepSchema",
    "GuidedSequenceKindSchema",
    "ConditionalOptionSchema",
    "ConditionalKindSchema",
    "HabitSchema",
    "ContextRuleSchema",
    "TemplateSchema",
    "CatalogSchema",
    "load_catalog",
]
