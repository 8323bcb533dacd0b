"""Common reusable schema primitives and the response envelope."""

from __future__ import annotations

from typing import Annotated, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, StringConstraints
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class ApiModel(BaseModel):
    """Base for API payloads: camelCase on the wire, snake_case accepted on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Envelope(ApiModel, Generic[DataT]):
    """Standard `{success, data, message}` response wrapper."""

    success: bool = True
    data: DataT
    message: str | None = None


class OkResponse(ApiModel):
    """Data-less success envelope."""

    success: bool = True
    message: str | None = None
