import json

import pytest

from posterai.services import analysis
from posterai.services.errors import InvalidImageError

from conftest import FakeImageClient, make_png_data_url

ANALYSIS_JSON = {
    "basicInfo": {
        "mainColor": "#112233",
        "taste": "ミニマル",
        "layout": "上下二分割 (60% / 40%)",
        "purpose": "SNS投稿",
        "mainTitle": "Coffee Day",
    },
    "detailedDescription": "1. Layout: ...",
}


@pytest.mark.parametrize(
    "fn, text, expected",
    [
        (analysis.map_to_purpose, "Event announcement", "event-ad"),
        (analysis.map_to_purpose, "店舗の案内", "info"),
        (analysis.map_to_purpose, None, "event-ad"),
        (analysis.map_to_taste, "Retro, nostalgic", "retro"),
        (analysis.map_to_taste, "和風", "japanese"),
        (analysis.map_to_taste, "something else", "modern"),
        (analysis.map_to_layout, "Centered", "center"),
        (analysis.map_to_layout, "左右分割", "split-horizontal"),
        (analysis.map_to_layout, "grid", "freeform"),
    ],
)
def test_keyword_mapping(fn, text, expected) -> None:
    assert fn(text) == expected


def test_strip_code_fences() -> None:
    assert analysis.strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert analysis.strip_code_fences('  {"a": 1} ') == '{"a": 1}'


def test_analyze_image_extracts_json_block() -> None:
    client = FakeImageClient()
    client.text = "Here is the analysis:\n```json\n" + json.dumps(ANALYSIS_JSON, ensure_ascii=False) + "\n```"

    result = analysis.analyze_image(make_png_data_url(), client)

    assert result["basicInfo"]["mainTitle"] == "Coffee Day"
    assert client.calls[0]["model"] == "gemini-2.5-flash"
    assert client.calls[0]["parts"][0] == analysis.ANALYSIS_PROMPT


def test_analyze_image_unparseable_output_keeps_raw() -> None:
    client = FakeImageClient()
    client.text = "I could not analyse this image."
    with pytest.raises(analysis.AnalysisParseError) as excinfo:
        analysis.analyze_image(make_png_data_url(), client)
    assert excinfo.value.raw == "I could not analyse this image."


def test_suggest_form_maps_analysis() -> None:
    suggested = analysis.suggest_form(ANALYSIS_JSON)
    assert suggested.purpose == "sns"
    assert suggested.taste == "minimal"
    assert suggested.layout == "split-vertical"
    assert suggested.main_color == "#112233"
    assert suggested.main_title == "Coffee Day"


def test_suggest_form_drops_invalid_colour() -> None:
    suggested = analysis.suggest_form({"basicInfo": {"mainColor": "sky blue"}})
    assert suggested.main_color is None
    assert suggested.main_title is None


def test_check_analysis_image_rejects_type_and_size(monkeypatch) -> None:
    with pytest.raises(InvalidImageError):
        analysis.check_analysis_image("data:image/bmp;base64,Qk0=")
    with pytest.raises(InvalidImageError):
        analysis.check_analysis_image("not a data url")

    monkeypatch.setenv("MAX_IMAGE_BYTES", "10")
    from posterai.config import get_settings

    get_settings.cache_clear()
    with pytest.raises(InvalidImageError) as excinfo:
        analysis.check_analysis_image(make_png_data_url())
    assert excinfo.value.status_code == 413


def test_normalise_text_layer_clamps_and_defaults() -> None:
    layer = analysis.normalise_text_layer(
        {
            "content": "SALE",
            "bbox": {"x": 2000, "y": -5, "width": "wide"},
            "style": {"color": "red", "fontSize": "huge", "fontWeight": "bold"},
        }
    )
    assert layer.bbox.x == 1000
    assert layer.bbox.y == 0
    assert layer.bbox.width == 100
    assert layer.bbox.height == 50
    assert layer.style.color == "#000000"
    assert layer.style.font_size == "medium"
    assert layer.style.font_weight == "bold"
    assert layer.style.text_align == "center"


def test_extract_text_layers() -> None:
    client = FakeImageClient()
    client.text = json.dumps({"texts": [{"content": "Hello", "style": {"color": "#FFFFFF"}}, "junk"]})

    layers = analysis.extract_text_layers(make_png_data_url(), client)

    assert len(layers) == 1
    assert layers[0].content == "Hello"
    assert layers[0].style.color == "#FFFFFF"


def test_extract_text_layers_without_list() -> None:
    client = FakeImageClient()
    client.text = '{"texts": "none"}'
    assert analysis.extract_text_layers(make_png_data_url(), client) == []


def test_extract_blueprint_uses_json_mode() -> None:
    client = FakeImageClient()
    client.text = json.dumps(
        {
            "dimensions": {"width": 1080, "height": 1350, "unit": "px"},
            "background": {"type": "solid", "value": "#FAFAFA"},
            "layers": [
                {"id": "t1", "type": "text", "content": "Hi", "position": {"x": 10, "y": 20, "z": 1}},
                {"type": "image", "size": {"width": 300, "height": 200}},
            ],
        }
    )

    blueprint = analysis.extract_blueprint(make_png_data_url(), client, [{"content": "Hi"}])

    assert blueprint.dimensions.width == 1080
    assert blueprint.layers[0].model_extra["content"] == "Hi"
    assert client.calls[0]["model"] == "gemini-1.5-flash"
    assert client.calls[0]["json_output"] is True
    assert '"content": "Hi"' in client.calls[0]["parts"][0]


def test_extract_blueprint_invalid_shape() -> None:
    client = FakeImageClient()
    client.text = '{"layers": []}'
    with pytest.raises(analysis.AnalysisParseError):
        analysis.extract_blueprint(make_png_data_url(), client)
