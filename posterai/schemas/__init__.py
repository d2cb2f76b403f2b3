"""Shared pydantic base for request/response payloads.

Payloads travel as camelCase JSON; the models also accept snake_case keys.
"""
from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

DATA_URL_RX = re.compile(r"^data:image/(jpeg|jpg|png);base64,", re.I)
ANY_IMAGE_DATA_URL_RX = re.compile(r"^data:image/[\w.+-]+;base64,", re.I)
HEX_COLOR_RX = re.compile(r"^#[0-9A-Fa-f]{6}$")


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


__all__ = ["_CamelModel", "DATA_URL_RX", "ANY_IMAGE_DATA_URL_RX", "HEX_COLOR_RX"]
