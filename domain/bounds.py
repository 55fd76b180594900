from __future__ import annotations

import math
from numbers import Real
from typing import Annotated, Literal

from pydantic import Field, Strict

UNSET = 0
POS_MAX = 0xFFFF
LEN_MAX = 0xFFFFFFFF

ConnectionField = Literal["pos", "len"]

PosValue = Annotated[int, Strict(), Field(ge=0, le=POS_MAX)]
LenValue = Annotated[int, Strict(), Field(ge=0, le=LEN_MAX)]
NodeId = Annotated[int, Strict(), Field(ge=1, le=POS_MAX)]


def coerce_bounded(value: object, maximum: int) -> int:
    # Anything that is not a whole number in [0, maximum] reads as unset.
    if isinstance(value, bool) or not isinstance(value, Real):
        return UNSET
    if isinstance(value, int):
        number = value
    else:
        try:
            as_float = float(value)
        except OverflowError:
            return UNSET
        if not math.isfinite(as_float) or not as_float.is_integer():
            return UNSET
        number = int(as_float)
    if number < 0 or number > maximum:
        return UNSET
    return number


def coerce_pos(value: object) -> int:
    return coerce_bounded(value, POS_MAX)


def coerce_len(value: object) -> int:
    return coerce_bounded(value, LEN_MAX)


def coerce_field(field: ConnectionField, value: object) -> int:
    if field == "pos":
        return coerce_pos(value)
    if field == "len":
        return coerce_len(value)
    msg = f"Unknown connection field: {field}"
    raise ValueError(msg)
