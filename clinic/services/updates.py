"""Applying partial updates to stored documents."""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from clinic.domain.errors import ClinicError, ErrorKind

M = TypeVar("M", bound=BaseModel)


def apply_changes(model_cls: type[M], current: dict[str, Any], changes: dict[str, Any]) -> M:
    """Overlay ``changes`` on ``current`` and re-validate the whole document.

    An update that leaves the document invalid, e.g. ``null`` for a required
    field, raises INVALID_DOCUMENT instead of leaking pydantic's error.
    """
    try:
        return model_cls.model_validate({**current, **changes})
    except ValidationError as exc:
        problems = [
            f"{'.'.join(str(part) for part in err['loc']) or 'document'}: {err['msg']}"
            for err in exc.errors()
        ]
        raise ClinicError(ErrorKind.INVALID_DOCUMENT, "; ".join(problems)) from exc
