"""Pure validation of raw takedown submissions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from pydantic import ValidationError

from ..domain.takedowns import TakedownSubmission

TARGET_REQUIRED_MESSAGE = "Either target_url or target_link_id must be provided"
ROOT_FIELD = "__root__"


@dataclass(frozen=True)
class ValidSubmission:
    data: TakedownSubmission


@dataclass(frozen=True)
class InvalidSubmission:
    field_errors: dict[str, list[str]] = field(default_factory=dict)


SubmissionResult = Union[ValidSubmission, InvalidSubmission]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_submission(raw: Any) -> SubmissionResult:
    """Check a decoded JSON body and return a tagged result; never raises for bad input."""

    if not isinstance(raw, dict):
        return InvalidSubmission({ROOT_FIELD: ["Expected a JSON object"]})

    errors: dict[str, list[str]] = {}
    submission: TakedownSubmission | None = None
    try:
        submission = TakedownSubmission.model_validate(raw)
    except ValidationError as exc:
        for error in exc.errors():
            loc = error.get("loc") or ()
            name = str(loc[0]) if loc else ROOT_FIELD
            errors.setdefault(name, []).append(error["msg"])

    if _is_blank(raw.get("target_url")) and _is_blank(raw.get("target_link_id")):
        errors.setdefault("target_url", []).append(TARGET_REQUIRED_MESSAGE)

    if errors or submission is None:
        return InvalidSubmission(errors)
    return ValidSubmission(submission)
