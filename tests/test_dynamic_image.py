import numpy as np
import pytest

from conftest import ALL_PIXELS, make_buffer
from serialimage import (
    DynamicSerialImage,
    ElementType,
    ElementTypeError,
    ImageMetaData,
    ImageRepository,
    SerialImageBuffer,
    SerializationError,
    ShapeError,
)


# =============================================================================
# Construction and variant access
# =============================================================================

def test_from_vec_constructors():
    img = DynamicSerialImage.from_vec_u8(2, 2, np.arange(12, dtype=np.uint8))
    assert img.element_type is ElementType.U8
    assert img.pixel.channels == 3

    img = DynamicSerialImage.from_vec_u16(2, 2, [0, 1, 2, 3])
    assert img.element_type is ElementType.U16
    assert img.pixel.channels == 1

    img = DynamicSerialImage.from_vec_f32(1, 1, [0.1, 0.2, 0.3, 1.0])
    assert img.element_type is ElementType.F32
    assert img.pixel.channels == 4


def test_from_vec_f32_grayscale_fails():
    with pytest.raises(ShapeError):
        DynamicSerialImage.from_vec_f32(2, 2, [0.0, 0.1, 0.2, 0.3])


def test_variant_accessors(rgb_image):
    assert rgb_image.as_u8() is rgb_image.buffer
    assert rgb_image.as_u16() is None
    assert rgb_image.as_f32() is None
    assert rgb_image.into_buffer("u8") is rgb_image.buffer
    with pytest.raises(ElementTypeError):
        rgb_image.into_buffer(ElementType.U16)
    assert (rgb_image.width, rgb_image.height) == (2, 2)


def test_set_buffer_switches_variant(rgb_image):
    rgb_image.set_buffer(rgb_image.buffer.convert_element_type("f32"))
    assert rgb_image.element_type is ElementType.F32
    assert rgb_image.as_u8() is None
    with pytest.raises(TypeError):
        rgb_image.set_buffer(np.zeros(12, dtype=np.uint8))


def test_metadata_defaults_and_replacement(rgb_2x2, full_metadata):
    img = DynamicSerialImage.from_buffer(rgb_2x2)
    assert img.get_metadata() == ImageMetaData()
    img.set_metadata(full_metadata)
    assert img.get_metadata() is full_metadata
    with pytest.raises(TypeError):
        img.set_metadata({"gain": 1})


def test_constructor_type_checks(rgb_2x2):
    with pytest.raises(TypeError):
        DynamicSerialImage(np.zeros((2, 2), dtype=np.uint8))
    with pytest.raises(TypeError):
        DynamicSerialImage(rgb_2x2, {"gain": 1})


def test_equality_includes_metadata(rgb_2x2, full_metadata):
    plain = DynamicSerialImage.from_buffer(rgb_2x2)
    tagged = DynamicSerialImage.from_buffer(rgb_2x2.copy(), full_metadata)
    assert plain != tagged
    assert DynamicSerialImage.from_buffer(rgb_2x2.copy()) == plain


# =============================================================================
# Encoded form
# =============================================================================

@pytest.mark.parametrize("pixel", ALL_PIXELS, ids=str)
def test_round_trip_without_metadata(pixel):
    img = DynamicSerialImage.from_buffer(make_buffer(pixel))
    assert ImageRepository.loads(ImageRepository.dumps(img)) == img


@pytest.mark.parametrize("pixel", ALL_PIXELS, ids=str)
def test_round_trip_with_full_metadata(pixel, full_metadata):
    img = DynamicSerialImage.from_buffer(make_buffer(pixel), full_metadata)
    decoded = ImageRepository.loads(ImageRepository.dumps(img))
    assert decoded == img
    assert decoded.buffer.as_flat().dtype == pixel.element_type.dtype


def test_float_elements_round_trip_exactly():
    values = np.array([0.1, 1 / 3, 2.5e-7, 0.99999994], dtype=np.float32)
    img = DynamicSerialImage.from_vec_f32(1, 1, values)
    decoded = ImageRepository.loads(ImageRepository.dumps(img))
    assert decoded.buffer.as_flat().tobytes() == values.tobytes()


def test_absent_exposure_stays_absent(rgb_2x2):
    img = DynamicSerialImage.from_buffer(rgb_2x2, ImageMetaData(camera_name="cam"))
    payload = img.to_dict()
    assert "exposure_time" not in payload["metadata"]

    decoded = DynamicSerialImage.from_dict(payload)
    assert decoded.metadata.exposure_time is None
    assert decoded.metadata.camera_name == "cam"


def test_encoded_layout(rgb_2x2):
    payload = DynamicSerialImage.from_buffer(rgb_2x2).to_dict()
    assert list(payload)[0] == "element_type"
    assert payload == {
        "element_type": "u8",
        "width": 2,
        "height": 2,
        "channels": 3,
        "data": list(range(1, 13)),
        "metadata": {},
    }


def test_missing_metadata_key_decodes_to_empty(rgb_image):
    payload = rgb_image.to_dict()
    del payload["metadata"]
    assert DynamicSerialImage.from_dict(payload).metadata == ImageMetaData()


@pytest.mark.parametrize("key", ["element_type", "width", "height", "channels", "data"])
def test_missing_required_key(rgb_image, key):
    payload = rgb_image.to_dict()
    del payload[key]
    with pytest.raises(SerializationError):
        DynamicSerialImage.from_dict(payload)


@pytest.mark.parametrize(
    "changes",
    [
        {"element_type": "rgb8"},
        {"width": "2"},
        {"height": 2.0},
        {"channels": "3"},
        {"data": "0102"},
        {"data": [1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, None]},
        {"data": [1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12.5]},
        {"data": [1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 256]},
        {"data": [1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, True]},
        {"metadata": {"gain": "high"}},
        {"element_type": "f32", "data": [1e39] + [0.5] * 11},
        {"element_type": "f32", "data": [-1e39] + [0.5] * 11},
    ],
)
def test_malformed_payload(rgb_image, changes):
    payload = rgb_image.to_dict()
    payload.update(changes)
    with pytest.raises(SerializationError):
        DynamicSerialImage.from_dict(payload)


def test_shape_mismatch_on_decode(rgb_image):
    payload = rgb_image.to_dict()
    payload["data"] = payload["data"][:-1]
    with pytest.raises(ShapeError):
        DynamicSerialImage.from_dict(payload)

    payload = rgb_image.to_dict()
    payload["element_type"] = "f32"
    payload["channels"] = 1
    with pytest.raises(ShapeError):
        DynamicSerialImage.from_dict(payload)


def test_integer_data_accepted_for_f32():
    payload = {"element_type": "f32", "width": 1, "height": 1, "channels": 3, "data": [0, 1, 0]}
    img = DynamicSerialImage.from_dict(payload)
    assert img.buffer.get_pixel(0, 0) == (0.0, 1.0, 0.0)


def test_non_mapping_payload():
    with pytest.raises(SerializationError):
        DynamicSerialImage.from_dict([1, 2, 3])


# =============================================================================
# External image boundary
# =============================================================================

def test_external_round_trip_keeps_pixels(rgb_image):
    external = rgb_image.try_into_external_image()
    back = DynamicSerialImage.try_from_external_image(external, rgb_image.metadata)
    assert back == rgb_image


def test_save_writes_png(tmp_path, rgb_image):
    path = tmp_path / "rgb.png"
    rgb_image.save(path)
    assert path.is_file()
    assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


def test_buffer_is_shared_not_copied(rgb_2x2):
    img = DynamicSerialImage.from_buffer(rgb_2x2)
    assert img.buffer is rgb_2x2
    assert isinstance(img.buffer, SerialImageBuffer)
