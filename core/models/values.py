# ============================================================================
# PARAMETER VALUE MODEL
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Core model - Tagged scalar values for process parameters
# PURPOSE: Fix string/integer formatting once, at the type level
# CREATED: 18 OCT 2026
# ============================================================================
"""
Parameter Values

A literal parameter is either a StringValue or an IntegerValue. The
discriminator field `type` keeps the union unambiguous when a workflow is
loaded from YAML or dumped to JSON.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


class StringValue(BaseModel):
    """Literal string parameter, rendered verbatim."""
    type: Literal["string"] = "string"
    value: str

    model_config = {"frozen": True}

    def render(self) -> str:
        return self.value


class IntegerValue(BaseModel):
    """Literal integer parameter, rendered as base-10 text."""
    type: Literal["integer"] = "integer"
    value: int

    model_config = {"frozen": True}

    def render(self) -> str:
        return str(self.value)


ParamValue = Annotated[Union[StringValue, IntegerValue], Field(discriminator="type")]


def to_param_value(value: Any) -> Union[StringValue, IntegerValue]:
    """
    Wrap a plain Python value as a ParamValue.

    Raises:
        TypeError: For anything other than str or int (bool included)
    """
    if isinstance(value, (StringValue, IntegerValue)):
        return value
    if isinstance(value, bool):
        raise TypeError(f"Boolean parameter values are not supported: {value!r}")
    if isinstance(value, int):
        return IntegerValue(value=value)
    if isinstance(value, str):
        return StringValue(value=value)
    raise TypeError(
        f"Parameter values must be str or int, got {type(value).__name__}: {value!r}"
    )


__all__ = [
    "StringValue",
    "IntegerValue",
    "ParamValue",
    "to_param_value",
]
