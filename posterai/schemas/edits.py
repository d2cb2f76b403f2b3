from __future__ import annotations

from typing import List, Optional

from pydantic import Field, model_validator

from posterai.schemas import _CamelModel
from posterai.schemas.poster import Dimensions, ModelMode


class EditRequest(_CamelModel):
    image_data: str = Field(min_length=1)
    edit_prompt: str = Field(min_length=1, max_length=3000)
    model_mode: Optional[ModelMode] = None


class RegionEditRequest(_CamelModel):
    image_data: str = Field(min_length=1)
    mask_data: str = Field(min_length=1)
    mask_edit_prompt: str = Field(min_length=1, max_length=3000)
    insert_images_data: List[str] = Field(default_factory=list)
    insert_images_usages: List[str] = Field(default_factory=list)
    model_mode: Optional[ModelMode] = None


class InsertRequest(_CamelModel):
    base_image_data: str = Field(min_length=1)
    insert_images_data: Optional[List[str]] = None
    insert_image_data: Optional[str] = None
    insert_prompt: str = Field(min_length=1, max_length=3000)
    model_mode: Optional[ModelMode] = None

    @property
    def inserts(self) -> List[str]:
        if self.insert_images_data:
            return list(self.insert_images_data)
        return [self.insert_image_data] if self.insert_image_data else []

    @model_validator(mode="after")
    def _require_insert(self) -> "InsertRequest":
        if not self.inserts:
            raise ValueError("At least one image to insert is required")
        return self


class TextEdit(_CamelModel):
    original: str
    new_content: str = ""
    color: Optional[str] = None
    font_size: Optional[str] = None
    is_delete: bool = False


class InsertImage(_CamelModel):
    data: str = Field(min_length=1)
    usage: str = ""


class UnifiedEditRequest(_CamelModel):
    image_data: str = Field(min_length=1)
    text_edits: List[TextEdit] = Field(default_factory=list)
    insert_images: List[InsertImage] = Field(default_factory=list)
    mask_data: Optional[str] = None
    mask_prompt: Optional[str] = None
    general_prompt: Optional[str] = None
    model_mode: ModelMode = "production"
    original_dimensions: Optional[Dimensions] = None

    @model_validator(mode="after")
    def _require_instruction(self) -> "UnifiedEditRequest":
        has_region = bool(self.mask_data and self.mask_prompt)
        if not (self.text_edits or self.insert_images or has_region or self.general_prompt):
            raise ValueError("At least one edit instruction is required")
        return self


class EditResponse(_CamelModel):
    success: bool = True
    image_url: str


class UpscaleRequest(_CamelModel):
    image_data: str = Field(min_length=1)
    scale: Optional[float] = None


class UpscaleResponse(_CamelModel):
    success: bool = True
    image_data: str
    original_size: Dimensions
    upscaled_size: Dimensions
    scale: float
