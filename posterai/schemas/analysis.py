from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import ConfigDict, Field

from posterai.schemas import _CamelModel


class AnalyzeImageRequest(_CamelModel):
    image_data: str = Field(min_length=1)


class SuggestedForm(_CamelModel):
    purpose: str
    taste: str
    layout: str
    main_color: Optional[str] = None
    main_title: Optional[str] = None
    detailed_prompt: Optional[str] = None


class AnalyzeImageResponse(_CamelModel):
    success: bool = True
    analysis: Dict[str, Any]
    suggested: SuggestedForm
    message: str = "Image analysed"


class BBox(_CamelModel):
    x: float = 0
    y: float = 0
    width: float = 100
    height: float = 50


class TextStyle(_CamelModel):
    font_family: Literal["serif", "sans-serif", "display"] = "sans-serif"
    font_weight: Literal["normal", "bold"] = "normal"
    font_size: Literal["small", "medium", "large", "xlarge"] = "medium"
    color: str = "#000000"
    text_align: Literal["left", "center", "right"] = "center"


class TextLayer(_CamelModel):
    content: str = ""
    bbox: BBox = Field(default_factory=BBox)
    style: TextStyle = Field(default_factory=TextStyle)


class ExtractTextLayersRequest(_CamelModel):
    image_data: str = Field(min_length=1)


class ExtractTextLayersResponse(_CamelModel):
    texts: List[TextLayer] = Field(default_factory=list)


class ExtractBlueprintRequest(_CamelModel):
    image: str = Field(min_length=1)
    text_layers: Optional[List[Dict[str, Any]]] = None


class BlueprintMeta(_CamelModel):
    title: Optional[str] = None
    generated_at: Optional[str] = None
    description: Optional[str] = None


class BlueprintDimensions(_CamelModel):
    width: float
    height: float
    unit: Literal["px", "pt", "in"] = "px"


class BlueprintBackground(_CamelModel):
    type: Literal["solid", "gradient", "image"] = "solid"
    value: str = "#FFFFFF"
    opacity: Optional[float] = None


class BlueprintLayer(_CamelModel):
    """A text, image or shape layer. Type specific keys are passed through."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    type: Literal["text", "image", "shape"]
    position: Dict[str, float] = Field(default_factory=dict)
    size: Dict[str, float] = Field(default_factory=dict)
    rotation: Optional[float] = None


class DesignBlueprint(_CamelModel):
    version: str = "1.0"
    meta: BlueprintMeta = Field(default_factory=BlueprintMeta)
    dimensions: BlueprintDimensions
    background: BlueprintBackground = Field(default_factory=BlueprintBackground)
    layers: List[BlueprintLayer] = Field(default_factory=list)
