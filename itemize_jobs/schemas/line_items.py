"""Line item schema for recurring invoice templates."""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from itemize_jobs.core.exceptions import ValidationError


class TemplateLineItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    product_id: int | None = None
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    quantity: Decimal = Decimal("1")
    unit_price: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0")

    @field_validator("quantity", mode="before")
    @classmethod
    def _default_quantity(cls, value: Any) -> Any:
        # The editor stores 0/blank for "unset"; treat it as one unit.
        if value is None or value == "" or value == 0:
            return Decimal("1")
        return value

    @field_validator("unit_price", "tax_rate", mode="before")
    @classmethod
    def _default_zero(cls, value: Any) -> Any:
        if value is None or value == "":
            return Decimal("0")
        return value


_LINE_ITEMS = TypeAdapter(list[TemplateLineItem])


def parse_template_items(raw: list | str | None) -> list[TemplateLineItem]:
    """Validate a template's stored item list, decoding legacy JSON strings."""
    if raw is None:
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Template items are not valid JSON: {exc}") from exc
    try:
        return _LINE_ITEMS.validate_python(raw)
    except PydanticValidationError as exc:
        raise ValidationError(f"Template items failed validation: {exc.error_count()} error(s)") from exc
