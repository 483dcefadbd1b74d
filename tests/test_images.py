import pytest

from agenda_gateway.errors import ClientInputError
from agenda_gateway.utils.images import DEFAULT_MEDIA_TYPE, validate_image

from conftest import PNG_BASE64


def test_valid_png():
    image = validate_image(PNG_BASE64, "image/png")
    assert image.data == PNG_BASE64
    assert image.media_type == "image/png"
    assert image.size_bytes > 0


def test_media_type_defaults_when_absent():
    assert validate_image(PNG_BASE64, None).media_type == DEFAULT_MEDIA_TYPE


def test_data_url_prefix_is_stripped_and_supplies_type():
    image = validate_image(f"data:image/png;base64,{PNG_BASE64}", None)
    assert image.data == PNG_BASE64
    assert image.media_type == "image/png"


def test_explicit_media_type_wins_over_data_url():
    image = validate_image(f"data:image/png;base64,{PNG_BASE64}", "image/webp")
    assert image.media_type == "image/webp"


def test_line_wrapped_base64_is_joined():
    wrapped = "\n".join(PNG_BASE64[i:i + 20] for i in range(0, len(PNG_BASE64), 20))
    assert validate_image(wrapped, "image/png").data == PNG_BASE64


def test_jpg_alias_normalized():
    assert validate_image(PNG_BASE64, "IMAGE/JPG").media_type == "image/jpeg"


@pytest.mark.parametrize("data", [None, "", "   "])
def test_missing_data_rejected(data):
    with pytest.raises(ClientInputError) as exc_info:
        validate_image(data, "image/png")
    assert exc_info.value.status_code == 400


def test_invalid_base64_rejected():
    with pytest.raises(ClientInputError, match="base64"):
        validate_image("esto no es base64!!", "image/png")


def test_unsupported_media_type_rejected():
    with pytest.raises(ClientInputError, match="no soportado"):
        validate_image(PNG_BASE64, "application/pdf")
