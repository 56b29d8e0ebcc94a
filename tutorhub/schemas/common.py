from datetime import date, datetime
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BackendModel(BaseModel):
    """Mirror of a backend document: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_backend(self, **kwargs: Any) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True, **kwargs)


def coerce_calendar_date(value: Any) -> Any:
    """Accept ``YYYY-MM-DD`` as well as full ISO timestamps for date fields."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        return value.split("T", 1)[0]
    return value


def today() -> date:
    return date.today()
