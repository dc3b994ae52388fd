from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from founder_ledger.domain.errors import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def validated(model_type: type[ModelT], data: Mapping[str, Any]) -> ModelT:
    """Build a domain model, reporting pydantic failures as the ledger's ValidationError."""
    try:
        return model_type.model_validate(dict(data))
    except PydanticValidationError as err:
        first = err.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise ValidationError(f"Invalid {model_type.__name__}: {first['msg']}", field=field) from err


def as_decimal(value: Decimal | int | str | float, *, field: str) -> Decimal:
    """Coerce user input to a finite Decimal; floats go through str() to avoid binary noise."""
    try:
        number = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as err:
        raise ValidationError(f"{field}={value!r} is not a number", field=field) from err
    if not number.is_finite():
        raise ValidationError(f"{field}={value!r} is not a number", field=field)
    return number
