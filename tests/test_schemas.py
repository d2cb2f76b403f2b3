import pytest
from pydantic import ValidationError

from posterai.schemas.admin import ToggleAdminRequest, UpdateUserRequest
from posterai.schemas.edits import InsertRequest, UnifiedEditRequest
from posterai.schemas.poster import PosterFormData

PNG = "data:image/png;base64,iVBORw0KGgo="


def _form(**overrides):
    payload = {
        "purpose": "event-ad",
        "outputSize": "a4",
        "taste": "modern",
        "layout": "center",
        "mainColor": "#336699",
        "mainTitle": "Summer Festival",
    }
    payload.update(overrides)
    return payload


def test_form_accepts_camel_and_snake_case() -> None:
    camel = PosterFormData.model_validate(_form(subTitle="Live music"))
    snake = PosterFormData.model_validate(
        {
            "purpose": "sns",
            "output_size": "b5",
            "taste": "pop",
            "layout": "frame",
            "main_color": "#FFFFFF",
            "main_title": "Sale",
        }
    )
    assert camel.sub_title == "Live music"
    assert camel.orientation == "portrait"
    assert snake.output_size == "b5"
    assert "mainTitle" in snake.to_wire()


@pytest.mark.parametrize(
    "overrides",
    [
        {"mainColor": "blue"},
        {"mainColor": "#12345"},
        {"mainTitle": ""},
        {"mainTitle": "x" * 51},
        {"purpose": "billboard"},
        {"sampleImageData": "data:image/gif;base64,R0lGOD"},
        {"outputSize": "custom", "customWidth": 800},
        {"materialsData": [PNG], "materialsNames": []},
        {"materialsData": [PNG] * 6, "materialsNames": ["m"] * 6},
        {"customWidth": 0},
    ],
)
def test_form_rejects_invalid_input(overrides) -> None:
    with pytest.raises(ValidationError):
        PosterFormData.model_validate(_form(**overrides))


def test_custom_size_with_unit_is_valid() -> None:
    form = PosterFormData.model_validate(
        _form(outputSize="custom", customWidth=210, customHeight=297, customUnit="mm")
    )
    assert form.custom_unit == "mm"


def test_reference_image_respects_text_only_mode() -> None:
    with_ref = PosterFormData.model_validate(_form(sampleImageData=PNG))
    text_only = PosterFormData.model_validate(_form(sampleImageData=PNG, generationMode="text-only"))
    assert with_ref.uses_reference_image
    assert not text_only.uses_reference_image


def test_insert_request_accepts_single_or_many() -> None:
    single = InsertRequest.model_validate({"baseImageData": PNG, "insertImageData": PNG, "insertPrompt": "top"})
    many = InsertRequest.model_validate({"baseImageData": PNG, "insertImagesData": [PNG, PNG], "insertPrompt": "x"})
    assert len(single.inserts) == 1
    assert len(many.inserts) == 2

    with pytest.raises(ValidationError):
        InsertRequest.model_validate({"baseImageData": PNG, "insertPrompt": "x"})


def test_unified_edit_requires_an_instruction() -> None:
    with pytest.raises(ValidationError):
        UnifiedEditRequest.model_validate({"imageData": PNG})
    # a mask without a prompt is not an instruction
    with pytest.raises(ValidationError):
        UnifiedEditRequest.model_validate({"imageData": PNG, "maskData": PNG})

    req = UnifiedEditRequest.model_validate({"imageData": PNG, "generalPrompt": "brighter"})
    assert req.model_mode == "production"


def test_admin_payloads_are_strict() -> None:
    with pytest.raises(ValidationError):
        UpdateUserRequest.model_validate({"id": 1, "dailyLimit": "10"})
    with pytest.raises(ValidationError):
        UpdateUserRequest.model_validate({"id": 1})
    with pytest.raises(ValidationError):
        ToggleAdminRequest.model_validate({"id": 1, "isAdmin": "yes"})

    req = UpdateUserRequest.model_validate({"id": 1, "isActive": False})
    assert req.is_active is False
