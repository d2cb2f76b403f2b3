"""Poster generation request and job payloads."""
from __future__ import annotations

import datetime as _dt
from typing import List, Literal, Optional

from pydantic import Field, field_validator, model_validator

from posterai.schemas import DATA_URL_RX, HEX_COLOR_RX, _CamelModel

Purpose = Literal[
    "event-ad",
    "info",
    "sns",
    "photo-main",
    "illustration-main",
    "typography-main",
    "concept",
]
Taste = Literal[
    "professional",
    "modern",
    "pop",
    "elegant",
    "cool",
    "stylish",
    "colorful",
    "graffiti",
    "street",
    "natural",
    "organic",
    "japanese",
    "asian",
    "retro",
    "vintage",
    "minimal",
]
Layout = Literal["center", "split-horizontal", "split-vertical", "diagonal", "frame", "freeform"]
Orientation = Literal["portrait", "landscape"]
OutputSize = Literal["b5", "a4", "b4", "a3", "custom"]
SizeUnit = Literal["px", "mm"]
GenerationMode = Literal["text-only", "image-reference"]
ReferenceStrength = Literal["strong", "normal", "weak"]
ModelMode = Literal["production", "development"]

MAX_MATERIALS = 5


class PosterFormData(_CamelModel):
    purpose: Purpose
    output_size: OutputSize
    orientation: Orientation = "portrait"
    taste: Taste
    layout: Layout
    main_color: str
    main_title: str = Field(min_length=1, max_length=50)
    sub_title: Optional[str] = Field(default=None, max_length=100)
    free_text: Optional[str] = Field(default=None, max_length=500)
    detailed_prompt: Optional[str] = Field(default=None, max_length=3000)
    character_description: Optional[str] = Field(default=None, max_length=500)

    sample_image_data: Optional[str] = None
    sample_image_name: Optional[str] = None
    materials_data: Optional[List[str]] = None
    materials_names: Optional[List[str]] = None

    custom_width: Optional[int] = Field(default=None, gt=0, le=10000)
    custom_height: Optional[int] = Field(default=None, gt=0, le=10000)
    custom_unit: Optional[SizeUnit] = None

    generation_mode: Optional[GenerationMode] = None
    image_reference_strength: Optional[ReferenceStrength] = None
    model_mode: Optional[ModelMode] = None

    @field_validator("main_color")
    @classmethod
    def _hex_color(cls, value: str) -> str:
        if not HEX_COLOR_RX.match(value):
            raise ValueError("mainColor must be in #RRGGBB format")
        return value

    @field_validator("sample_image_data")
    @classmethod
    def _sample_image(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not DATA_URL_RX.match(value):
            raise ValueError("Images must be base64 encoded JPEG or PNG data")
        return value

    @field_validator("materials_data")
    @classmethod
    def _materials(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is not None and len(value) > MAX_MATERIALS:
            raise ValueError(f"At most {MAX_MATERIALS} material images are allowed")
        for item in value or []:
            if not DATA_URL_RX.match(item):
                raise ValueError("Images must be base64 encoded JPEG or PNG data")
        return value

    @model_validator(mode="after")
    def _cross_checks(self) -> "PosterFormData":
        if self.output_size == "custom":
            if self.custom_width is None or self.custom_height is None or self.custom_unit is None:
                raise ValueError("Custom size requires width, height and unit")
        if self.materials_data:
            if not self.materials_names or len(self.materials_names) != len(self.materials_data):
                raise ValueError("materialsData and materialsNames must have the same length")
        return self

    @property
    def uses_reference_image(self) -> bool:
        return bool(self.sample_image_data) and self.generation_mode != "text-only"


class Dimensions(_CamelModel):
    width: int
    height: int

    @property
    def aspect_ratio(self) -> str:
        return f"{self.width / self.height:.3f}"


class JobCreated(_CamelModel):
    job_id: str
    remaining: int
    reset_at: _dt.datetime


class JobStatus(_CamelModel):
    id: str
    status: str
    progress: int
    image_url: Optional[str] = None
    error: Optional[str] = None
    created_at: _dt.datetime
    updated_at: _dt.datetime


class GeneratePosterResponse(_CamelModel):
    success: bool = True
    image_data: str
    form_data: PosterFormData
    message: str
