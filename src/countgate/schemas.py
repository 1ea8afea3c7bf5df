# src/countgate/schemas.py
from __future__ import annotations

from typing import Union

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt


class CountResponse(BaseModel):
    """
    Schema for a ``_count`` response body.

    Only ``count`` is required; Elasticsearch also sends ``_shards`` and
    newer versions may add fields, which are kept but ignored.
    """
    model_config = ConfigDict(extra="allow")

    count: Union[StrictInt, StrictFloat]
