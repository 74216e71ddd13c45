"""Schema for the items of the model's JSON review answer."""

from __future__ import annotations

from pydantic import BaseModel, Field, StrictInt, StrictStr


class InlineFinding(BaseModel):
    """One ``{file, line, comment}`` item, anchored to a new-file line.

    ``line`` must be a real JSON integer: booleans, floats and numeric strings
    are rejected rather than coerced.
    """

    file: StrictStr = Field(min_length=1)
    line: StrictInt = Field(gt=0)
    comment: StrictStr = Field(min_length=1)
