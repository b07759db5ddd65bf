"""
Validation schemas for incoming form payloads.

The onboarding form posts three fields: ``householdName`` as plain text, and
``areas`` and ``chores`` as JSON strings. :func:`validate_onboarding` decodes
and validates them in one pass and reports every failing field at once,
flattened into ``{"formErrors": [...], "fieldErrors": {field: [...]}}``.

The chore description limit is 255 characters while its message says 50.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, get_args

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationError as PydanticValidationError,
)
from pydantic_core import PydanticCustomError

from errors import ValidationError

Frequency = Literal["daily", "weekly", "bi-weekly", "monthly", "custom"]
FREQUENCY_OPTIONS = get_args(Frequency)

JSON_FIELDS = ("areas", "chores")


def _length(min_length: int, max_length: int, too_short: str, too_long: str) -> AfterValidator:
    def check(value: str) -> str:
        if len(value) < min_length:
            raise PydanticCustomError("too_short", too_short)
        if len(value) > max_length:
            raise PydanticCustomError("too_long", too_long)
        return value

    return AfterValidator(check)


def _max_length(max_length: int, too_long: str) -> AfterValidator:
    def check(value: str) -> str:
        if len(value) > max_length:
            raise PydanticCustomError("too_long", too_long)
        return value

    return AfterValidator(check)


Name = Annotated[
    str,
    _length(1, 50, "Name must be more than 1 character", "Name must be less than 50 characters"),
]
ChoreName = Annotated[
    str,
    _length(1, 50, "Name must be more than 1 character", "Must not be more than 50 characters"),
]
Description = Annotated[str, _max_length(255, "Description must be less than 50 characters")]
Password = Annotated[
    str,
    _length(8, 50, "Password must be at least 8 characters", "Password must be at most 50 characters"),
]


class ChoreInput(BaseModel):
    """A chore record as entered in the onboarding wizard.

    Every field may be left out, but a field that is present must hold a
    value: an explicit ``null`` is rejected. Defaults are not validated, so
    ``None`` only ever means "missing".
    """

    model_config = ConfigDict(populate_by_name=True)

    name: ChoreName = None
    description: Description = None
    due_at: str = Field(default=None, alias="dueAt")
    frequency: Frequency = None
    custom_frequency: str = Field(default=None, alias="customFrequency")


class OnboardingSubmission(BaseModel):
    """A validated household, its areas and their chores."""

    model_config = ConfigDict(populate_by_name=True)

    household_name: Name = Field(alias="householdName")
    areas: Dict[Name, List[Name]]
    chores: List[ChoreInput]


class RegistrationForm(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: EmailStr
    password: Password
    confirm_password: Password = Field(alias="confirmPassword")


def flatten_errors(exc: PydanticValidationError) -> Dict[str, Any]:
    """Group pydantic errors by their top-level field."""
    form_errors: List[str] = []
    field_errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        loc = error["loc"]
        if loc:
            field_errors.setdefault(str(loc[0]), []).append(error["msg"])
        else:
            form_errors.append(error["msg"])
    return {"formErrors": form_errors, "fieldErrors": field_errors}


def _merge(flattened: Dict[str, Any], extra: Dict[str, List[str]]) -> Dict[str, Any]:
    for field, messages in extra.items():
        flattened["fieldErrors"].setdefault(field, []).extend(messages)
    return flattened


def validate_onboarding(fields: Mapping[str, Any]) -> OnboardingSubmission:
    """Decode and validate an onboarding form submission.

    Parameters
    ----------
    fields:
        The raw form fields. ``areas`` and ``chores`` may be JSON strings or
        already-decoded values.

    Returns
    -------
    OnboardingSubmission
        The validated submission.

    Raises
    ------
    errors.ValidationError
        With every failing field listed, and the submitted fields (JSON
        decoded where possible) so the form can be re-rendered.
    """
    submitted = dict(fields)
    data = dict(fields)
    decode_errors: Dict[str, List[str]] = {}
    placeholders = {"areas": {}, "chores": []}

    for key in JSON_FIELDS:
        raw = data.get(key)
        if not isinstance(raw, str):
            continue
        try:
            data[key] = submitted[key] = json.loads(raw)
        except json.JSONDecodeError:
            decode_errors[key] = [f"{key} must be valid JSON"]
            data[key] = placeholders[key]

    try:
        submission = OnboardingSubmission.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(_merge(flatten_errors(exc), decode_errors), submitted) from exc

    if decode_errors:
        raise ValidationError(
            {"formErrors": [], "fieldErrors": decode_errors}, submitted
        )
    return submission


def validate_registration(fields: Mapping[str, Any]) -> RegistrationForm:
    """Validate a registration form, including the password confirmation."""
    submitted = dict(fields)
    mismatch: Dict[str, List[str]] = {}
    password = submitted.get("password")
    confirm = submitted.get("confirmPassword")
    if isinstance(password, str) and isinstance(confirm, str) and password != confirm:
        mismatch["confirmPassword"] = ["Passwords don't match"]

    # never echo passwords back to the client
    echoed = {k: v for k, v in submitted.items() if k not in ("password", "confirmPassword")}

    try:
        form = RegistrationForm.model_validate(submitted)
    except PydanticValidationError as exc:
        raise ValidationError(_merge(flatten_errors(exc), mismatch), echoed) from exc

    if mismatch:
        raise ValidationError({"formErrors": [], "fieldErrors": mismatch}, echoed)
    return form
