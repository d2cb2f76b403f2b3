"""Vision model helpers: poster analysis, text layer and blueprint extraction."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from posterai.config import get_settings
from posterai.schemas.analysis import DesignBlueprint, SuggestedForm, TextLayer
from posterai.schemas import HEX_COLOR_RX
from posterai.services.errors import ImageGenerationError, InvalidImageError
from posterai.services.image_provider import ImageClient
from posterai.services.images import decode_image_ref, parse_data_url

logger = logging.getLogger(__name__)

JSON_BLOCK_RE = re.compile(r"\{[\s\S]*\}")


class AnalysisParseError(ImageGenerationError):
    """Model output could not be parsed; ``raw`` keeps the text."""

    def __init__(self, message: str, raw: str) -> None:
        super().__init__(message)
        self.raw = raw


ANALYSIS_PROMPT = """This image is a poster or design work.
Describe its design in enough detail that an AI image generator can reproduce it with high fidelity.
Layout proportions, typography and exact colours matter most.

Answer with JSON only, in this shape:

{
  "basicInfo": {
    "mainColor": "main colour as HEX, e.g. #87CEEB",
    "accentColors": ["accent colour HEX", "accent colour HEX"],
    "baseColor": "background colour as HEX",
    "taste": "design style (modern, minimal, elegant, casual, retro, japanese, pop...)",
    "layout": "layout structure (centered, left/right split, top/bottom split, grid, asymmetric...) with proportions in %",
    "purpose": "intended use (event announcement, product ad, store notice, SNS post, flyer...)",
    "mainTitle": "main title or catch copy exactly as written, empty string if none"
  },
  "detailedDescription": "Numbered, very detailed reproduction instructions (at most 5000 characters) covering: 1. exact layout and proportions, 2. colour system with HEX codes, 3. typography, 4. art style and texture, 5. main visual elements, 6. decorative parts, 7. placement of every text element, 8. finishing effects. Always give colours as #XXXXXX and positions as % or px."
}"""

TEXT_LAYERS_PROMPT = """Detect every piece of text in this image and return JSON only, in this shape:

{
  "texts": [
    {
      "content": "detected text",
      "bbox": {"x": 0-1000, "y": 0-1000, "width": 0-1000, "height": 0-1000},
      "style": {
        "fontFamily": "serif" | "sans-serif" | "display",
        "fontWeight": "normal" | "bold",
        "fontSize": "small" | "medium" | "large" | "xlarge",
        "color": "#RRGGBB",
        "textAlign": "left" | "center" | "right"
      }
    }
  ]
}

Notes:
- Coordinates are relative: 0 is the left/top edge and 1000 the right/bottom edge
- Colours are always six digit HEX starting with #
- fontSize relative to the canvas: small ~3%, medium ~5%, large ~8%, xlarge 12% or more"""

BLUEPRINT_SCHEMA = """{
  "version": "1.0",
  "meta": {"title": "Poster Title", "generatedAt": "ISO Date", "description": "Brief description"},
  "dimensions": {"width": number, "height": number, "unit": "px"},
  "background": {"type": "solid" | "gradient" | "image", "value": "hex code or url", "opacity": number},
  "layers": [
    {
      "id": "unique_id",
      "type": "text",
      "content": "Text content",
      "position": {"x": number, "y": number, "z": number},
      "size": {"width": number, "height": number},
      "rotation": number,
      "style": {"fontFamily": "Font Name", "fontSize": number, "color": "#hex", "fontWeight": "bold" | "normal",
                "textAlign": "left" | "center" | "right", "backgroundColor": "#hex or null"}
    },
    {
      "type": "image",
      "position": {"x": number, "y": number, "z": number},
      "size": {"width": number, "height": number},
      "rotation": number
    }
  ]
}"""

_PURPOSE_KEYWORDS: Sequence[Tuple[str, Tuple[str, ...]]] = (
    ("event-ad", ("イベント", "event")),
    ("info", ("案内", "info", "情報")),
    ("sns", ("sns", "ソーシャル", "social")),
    ("photo-main", ("写真", "photo", "フォト")),
    ("illustration-main", ("イラスト", "illustration")),
    ("typography-main", ("タイポ", "文字", "typography")),
    ("concept", ("コンセプト", "concept")),
)

_TASTE_KEYWORDS: Sequence[Tuple[str, Tuple[str, ...]]] = (
    ("professional", ("プロフェッショナル", "professional", "ビジネス", "business")),
    ("modern", ("モダン", "modern", "現代")),
    ("pop", ("ポップ", "pop", "カラフル", "colorful")),
    ("elegant", ("エレガント", "elegant", "上品")),
    ("cool", ("クール", "cool")),
    ("stylish", ("スタイリッシュ", "stylish", "洗練")),
    ("graffiti", ("graffiti", "グラフィティ")),
    ("street", ("ストリート", "street")),
    ("natural", ("ナチュラル", "natural", "自然")),
    ("organic", ("オーガニック", "organic")),
    ("japanese", ("和", "japanese", "日本")),
    ("asian", ("アジア", "asian")),
    ("retro", ("レトロ", "retro", "ノスタルジック", "nostalgic")),
    ("vintage", ("ビンテージ", "vintage")),
    ("minimal", ("ミニマル", "minimal", "シンプル", "simple")),
)

_LAYOUT_KEYWORDS: Sequence[Tuple[str, Tuple[str, ...]]] = (
    ("center", ("中央", "center", "centre", "センター")),
    ("split-horizontal", ("左右", "水平", "horizontal", "left/right")),
    ("split-vertical", ("上下", "垂直", "vertical", "二分割", "top/bottom")),
    ("diagonal", ("斜め", "diagonal")),
    ("frame", ("フレーム", "frame", "額")),
)


def _match(text: str | None, table: Sequence[Tuple[str, Tuple[str, ...]]], default: str) -> str:
    lowered = (text or "").lower()
    for value, keywords in table:
        if any(keyword in lowered for keyword in keywords):
            return value
    return default


def map_to_purpose(text: str | None) -> str:
    return _match(text, _PURPOSE_KEYWORDS, "event-ad")


def map_to_taste(text: str | None) -> str:
    return _match(text, _TASTE_KEYWORDS, "modern")


def map_to_layout(text: str | None) -> str:
    return _match(text, _LAYOUT_KEYWORDS, "freeform")


def strip_code_fences(text: str) -> str:
    s = text.strip()
    if s.startswith("```"):
        first_nl = s.find("\n")
        s = s[first_nl + 1 :] if first_nl != -1 else s[3:]
        if s.rstrip().endswith("```"):
            s = s.rstrip()[:-3]
    return s.strip()


def check_analysis_image(image_data: str) -> str:
    """Validate size and MIME type of an analysis upload, returning the MIME type."""

    guard = get_settings().guard
    if guard.max_image_bytes and len(image_data) > guard.max_image_bytes:
        raise InvalidImageError("File is too large. Up to 10MB can be uploaded", status_code=413)
    try:
        mime, _ = parse_data_url(image_data)
    except InvalidImageError as exc:
        raise InvalidImageError("Unsupported file format. Only JPEG, PNG, WebP and GIF are supported") from exc
    if mime not in guard.analysis_mime_types:
        raise InvalidImageError("Unsupported file format. Only JPEG, PNG, WebP and GIF are supported")
    return mime


def suggest_form(analysis: Dict[str, Any]) -> SuggestedForm:
    info = analysis.get("basicInfo") or {}
    main_color = info.get("mainColor")
    return SuggestedForm(
        purpose=map_to_purpose(info.get("purpose")),
        taste=map_to_taste(info.get("taste")),
        layout=map_to_layout(info.get("layout")),
        main_color=main_color if isinstance(main_color, str) and HEX_COLOR_RX.match(main_color) else None,
        main_title=(info.get("mainTitle") or None),
        detailed_prompt=(analysis.get("detailedDescription") or None),
    )


def analyze_image(image_data: str, client: ImageClient) -> Dict[str, Any]:
    check_analysis_image(image_data)
    image = decode_image_ref(image_data)
    text = client.generate_text([ANALYSIS_PROMPT, image], model=get_settings().gemini.vision_model)

    match = JSON_BLOCK_RE.search(text)
    if not match:
        raise AnalysisParseError("Failed to parse the image analysis result", raw=text)
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise AnalysisParseError("Failed to parse the image analysis result", raw=text) from exc
    if not isinstance(data, dict):
        raise AnalysisParseError("Failed to parse the image analysis result", raw=text)
    return data


def _clamp(value: Any, default: float) -> float:
    try:
        number = float(value) if value else default
    except (TypeError, ValueError):
        number = default
    return max(0.0, min(1000.0, number))


def _pick(value: Any, allowed: Sequence[str], default: str) -> str:
    return value if value in allowed else default


def normalise_text_layer(raw: Dict[str, Any]) -> TextLayer:
    bbox = raw.get("bbox") if isinstance(raw.get("bbox"), dict) else {}
    style = raw.get("style") if isinstance(raw.get("style"), dict) else {}
    color = style.get("color")
    return TextLayer.model_validate(
        {
            "content": str(raw.get("content") or ""),
            "bbox": {
                "x": _clamp(bbox.get("x"), 0),
                "y": _clamp(bbox.get("y"), 0),
                "width": _clamp(bbox.get("width"), 100),
                "height": _clamp(bbox.get("height"), 50),
            },
            "style": {
                "fontFamily": _pick(style.get("fontFamily"), ("serif", "sans-serif", "display"), "sans-serif"),
                "fontWeight": _pick(style.get("fontWeight"), ("normal", "bold"), "normal"),
                "fontSize": _pick(style.get("fontSize"), ("small", "medium", "large", "xlarge"), "medium"),
                "color": color if isinstance(color, str) and HEX_COLOR_RX.match(color) else "#000000",
                "textAlign": _pick(style.get("textAlign"), ("left", "center", "right"), "center"),
            },
        }
    )


def extract_text_layers(image_data: str, client: ImageClient) -> List[TextLayer]:
    image = decode_image_ref(image_data)
    text = client.generate_text([TEXT_LAYERS_PROMPT, image], model=get_settings().gemini.vision_model)
    try:
        parsed = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as exc:
        raise AnalysisParseError("Failed to parse text extraction response", raw=text) from exc

    texts = parsed.get("texts") if isinstance(parsed, dict) else None
    if not isinstance(texts, list):
        logger.info("text extraction returned no texts list")
        return []
    return [normalise_text_layer(item) for item in texts if isinstance(item, dict)]


def extract_blueprint(
    image_data: str,
    client: ImageClient,
    text_layers: Optional[List[Dict[str, Any]]] = None,
) -> DesignBlueprint:
    image = decode_image_ref(image_data)
    prompt = "\n".join(
        [
            "Analyze this poster image and extract its design blueprint into a strict JSON format.",
            "The JSON is used to rebuild the poster in slide software, so coordinate accuracy is critical.",
            "",
            "Requirements:",
            "1. Dimensions: estimate the canvas width and height from the image ratio.",
            "2. Background: identify the main background colour or image.",
            "3. Layers: separate the design into text, image and shape layers.",
            "4. Text layers: extract all visible text with font family (default Arial), hex colour and bounding box from the top-left corner.",
            "5. Image layers: give bounding boxes for the main subject images or graphics.",
            "",
            "Input context (use it to improve text accuracy):",
            json.dumps(text_layers or [], ensure_ascii=False, indent=2),
            "",
            "Output schema:",
            BLUEPRINT_SCHEMA,
        ]
    )
    text = client.generate_text([prompt, image], model=get_settings().gemini.blueprint_model, json_output=True)
    try:
        return DesignBlueprint.model_validate(json.loads(strip_code_fences(text)))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise AnalysisParseError("Failed to parse AI response", raw=text) from exc
