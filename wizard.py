"""
Onboarding wizard state machine.

The wizard walks a user through four steps::

    household -> areas -> chores -> check -> submitted

The whole wizard is one immutable :class:`WizardState` value: the current
step, the raw text inputs, the accumulated :class:`Draft` and the list of
chores entered so far. :func:`transition` is a pure reducer. It takes a state
and an :class:`Action` and returns the next state, or raises
``TransitionError`` when the action is not allowed. :func:`serialize` turns
a finished draft into the form payload accepted by the onboarding endpoint.

Areas are keyed by name, so entering the same area twice yields one area.
Chores already assigned to it are kept.

The draft's area mapping and chore records are read-only
``MappingProxyType`` views, so a state cannot be changed in place. States
compare by value but are not hashable.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Tuple

from errors import TransitionError


class Step(str, Enum):
    HOUSEHOLD = "household"
    AREAS = "areas"
    CHORES = "chores"
    CHECK = "check"
    SUBMITTED = "submitted"


class Action(str, Enum):
    GO_TO_AREAS = "go_to_areas"
    ADD_ANOTHER_AREA = "add_another_area"
    GO_TO_CHORES = "go_to_chores"
    ADD_ANOTHER_CHORE = "add_another_chore"
    ANOTHER_AREA = "another_area"
    GO_TO_CHECK = "go_to_check"
    SUBMIT = "submit"


# form field name -> Inputs attribute
INPUT_FIELDS = {
    "householdName": "household_name",
    "areaName": "area_name",
    "choreName": "chore_name",
    "choreDescription": "chore_description",
}


@dataclass(frozen=True)
class Inputs:
    household_name: str = ""
    area_name: str = ""
    chore_name: str = ""
    chore_description: str = ""


@dataclass(frozen=True)
class Draft:
    """The household being built: its name, areas and chore records."""

    household_name: str = ""
    areas: Mapping[str, Tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))
    chores: Tuple[Mapping[str, str], ...] = ()


@dataclass(frozen=True)
class WizardState:
    step: Step = Step.HOUSEHOLD
    inputs: Inputs = field(default_factory=Inputs)
    draft: Draft = field(default_factory=Draft)
    review: Tuple[Mapping[str, str], ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-safe representation, e.g. for the Flask session."""
        return {
            "step": self.step.value,
            "inputs": {
                name: getattr(self.inputs, attr) for name, attr in INPUT_FIELDS.items()
            },
            "draft": {
                "householdName": self.draft.household_name,
                "areas": {area: list(chores) for area, chores in self.draft.areas.items()},
                "chores": [dict(chore) for chore in self.draft.chores],
            },
            "review": [dict(chore) for chore in self.review],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WizardState":
        inputs = data.get("inputs", {})
        draft = data.get("draft", {})
        return cls(
            step=Step(data.get("step", Step.HOUSEHOLD.value)),
            inputs=Inputs(
                **{attr: inputs.get(name, "") for name, attr in INPUT_FIELDS.items()}
            ),
            draft=Draft(
                household_name=draft.get("householdName", ""),
                areas=MappingProxyType({
                    area: tuple(chores) for area, chores in draft.get("areas", {}).items()
                }),
                chores=tuple(_record(chore) for chore in draft.get("chores", [])),
            ),
            review=tuple(_record(chore) for chore in data.get("review", [])),
        )


def _record(chore: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(chore))


def _with_area(areas: Mapping[str, Tuple[str, ...]], area: str) -> Mapping[str, Tuple[str, ...]]:
    updated = dict(areas)
    updated.setdefault(area, ())
    return MappingProxyType(updated)


def _with_chore_name(
    areas: Mapping[str, Tuple[str, ...]], area: str, chore: str
) -> Mapping[str, Tuple[str, ...]]:
    updated = dict(areas)
    updated[area] = updated.get(area, ()) + (chore,)
    return MappingProxyType(updated)


def _cleared(inputs: Inputs, *, area: bool) -> Inputs:
    cleared = replace(inputs, chore_name="", chore_description="")
    if area:
        cleared = replace(cleared, area_name="")
    return cleared


def _require(value: str, message: str) -> None:
    if not value:
        raise TransitionError(message)


def _go_to_areas(state: WizardState) -> WizardState:
    _require(state.inputs.household_name, "household name is required")
    return replace(
        state,
        step=Step.AREAS,
        draft=replace(state.draft, household_name=state.inputs.household_name),
    )


def _add_another_area(state: WizardState) -> WizardState:
    _require(state.inputs.area_name, "area name is required")
    return replace(
        state,
        inputs=replace(state.inputs, area_name=""),
        draft=replace(state.draft, areas=_with_area(state.draft.areas, state.inputs.area_name)),
    )


def _go_to_chores(state: WizardState) -> WizardState:
    _require(state.inputs.area_name, "area name is required")
    return replace(
        state,
        step=Step.CHORES,
        draft=replace(state.draft, areas=_with_area(state.draft.areas, state.inputs.area_name)),
    )


def _add_another_chore(state: WizardState) -> WizardState:
    inputs = state.inputs
    _require(inputs.chore_name, "chore name is required")
    chore = _record({"name": inputs.chore_name, "description": inputs.chore_description})
    return replace(
        state,
        inputs=_cleared(inputs, area=False),
        review=state.review + (chore,),
        draft=replace(
            state.draft,
            areas=_with_chore_name(state.draft.areas, inputs.area_name, inputs.chore_name),
            chores=state.draft.chores + (chore,),
        ),
    )


def _flush_pending_chore(state: WizardState) -> WizardState:
    """Move the chore being typed into the draft, if it has a name."""
    inputs = state.inputs
    if not inputs.chore_name:
        return state
    if inputs.chore_description:
        chore = _record({"name": inputs.chore_name, "description": inputs.chore_description})
    else:
        chore = _record({"name": inputs.chore_name})
    return replace(
        state,
        review=state.review + (chore,),
        draft=replace(
            state.draft,
            areas=_with_chore_name(state.draft.areas, inputs.area_name, inputs.chore_name),
            chores=state.draft.chores + (chore,),
        ),
    )


def _another_area(state: WizardState) -> WizardState:
    flushed = _flush_pending_chore(state)
    return replace(flushed, step=Step.AREAS, inputs=_cleared(flushed.inputs, area=True))


def _go_to_check(state: WizardState) -> WizardState:
    flushed = _flush_pending_chore(state)
    return replace(flushed, step=Step.CHECK, inputs=_cleared(flushed.inputs, area=True))


def _submit(state: WizardState) -> WizardState:
    return replace(state, step=Step.SUBMITTED)


_TRANSITIONS = {
    Action.GO_TO_AREAS: (Step.HOUSEHOLD, _go_to_areas),
    Action.ADD_ANOTHER_AREA: (Step.AREAS, _add_another_area),
    Action.GO_TO_CHORES: (Step.AREAS, _go_to_chores),
    Action.ADD_ANOTHER_CHORE: (Step.CHORES, _add_another_chore),
    Action.ANOTHER_AREA: (Step.CHORES, _another_area),
    Action.GO_TO_CHECK: (Step.CHORES, _go_to_check),
    Action.SUBMIT: (Step.CHECK, _submit),
}


def transition(state: WizardState, action: Action | str) -> WizardState:
    """Apply ``action`` to ``state`` and return the resulting state."""
    try:
        action = Action(action)
    except ValueError:
        raise TransitionError(f"unknown action {action!r}") from None

    expected, handler = _TRANSITIONS[action]
    if state.step is not expected:
        raise TransitionError(f"cannot {action.value} from step {state.step.value}")
    return handler(state)


def set_input(state: WizardState, name: str, value: str) -> WizardState:
    """Set one text input, by form name (``areaName``) or attribute name."""
    if state.step is Step.SUBMITTED:
        raise TransitionError("wizard is already submitted")
    attr = INPUT_FIELDS.get(name, name)
    if attr not in {f.name for f in fields(Inputs)}:
        raise TransitionError(f"unknown input {name!r}")
    return replace(state, inputs=replace(state.inputs, **{attr: value}))


def serialize(draft: Draft) -> Dict[str, str]:
    """Encode a draft as the onboarding form fields."""
    return {
        "householdName": draft.household_name,
        "areas": json.dumps({area: list(chores) for area, chores in draft.areas.items()}),
        "chores": json.dumps([dict(chore) for chore in draft.chores]),
    }
