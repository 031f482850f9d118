from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, SerializationInfo, field_serializer
from pydantic.alias_generators import to_camel

from app.utils.time_utils import to_wire


class CamelModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire"""
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @field_serializer("*", mode="wrap", when_used="json")
    def _serialize_utc(self, value: Any, handler, info: SerializationInfo) -> Any:
        # Stored datetimes are naive UTC; say so on the wire
        if isinstance(value, datetime):
            return to_wire(value)
        return handler(value)


class SuccessResponse(CamelModel):
    success: bool = True
