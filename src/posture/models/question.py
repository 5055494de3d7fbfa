"""Question catalog data models."""

from __future__ import annotations

from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class NistFunction(str, Enum):
    GOVERN = "GOVERN"
    IDENTIFY = "IDENTIFY"
    PROTECT = "PROTECT"
    DETECT = "DETECT"
    RESPOND = "RESPOND"
    RECOVER = "RECOVER"


FUNCTION_ORDER: tuple[NistFunction, ...] = (
    NistFunction.GOVERN,
    NistFunction.IDENTIFY,
    NistFunction.PROTECT,
    NistFunction.DETECT,
    NistFunction.RESPOND,
    NistFunction.RECOVER,
)


class Question(BaseModel):
    """A single assessment item. `id` is the join key used everywhere."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    function: NistFunction = Field(
        validation_alias=AliasChoices("function", "nistFunction")
    )
    category: str
    control: str
    prompt: str
