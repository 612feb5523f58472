import numpy as np
import pytest

from serialimage import ElementType, ElementTypeError, SerialImagePixel, ShapeError


@pytest.mark.parametrize("element_type", [ElementType.U8, ElementType.U16])
@pytest.mark.parametrize("channels", [1, 2, 3, 4])
def test_integer_types_accept_all_layouts(element_type, channels):
    pixel = SerialImagePixel(element_type, channels)
    assert pixel.channels == channels
    assert pixel.has_alpha == (channels in (2, 4))
    assert pixel.is_grayscale == (channels in (1, 2))


@pytest.mark.parametrize("channels", [1, 2])
def test_f32_grayscale_is_rejected(channels):
    with pytest.raises(ShapeError):
        SerialImagePixel.f32(channels)


@pytest.mark.parametrize("channels", [0, 5, -1])
def test_illegal_channel_counts(channels):
    with pytest.raises(ShapeError):
        SerialImagePixel.u8(channels)


def test_non_integer_channel_count():
    with pytest.raises(ShapeError):
        SerialImagePixel.u8(True)
    with pytest.raises(ShapeError):
        SerialImagePixel.u16(3.0)


def test_element_sizes():
    assert SerialImagePixel.u8(3).element_size == 1
    assert SerialImagePixel.u16(1).element_size == 2
    assert SerialImagePixel.f32(4).element_size == 4
    assert SerialImagePixel.u16(1).bits == 16


def test_descriptor_equality_and_hash():
    assert SerialImagePixel("u8", 3) == SerialImagePixel.u8(3)
    assert len({SerialImagePixel.u8(3), SerialImagePixel(ElementType.U8, 3)}) == 1
    assert SerialImagePixel.u8(3) != SerialImagePixel.u16(3)
    assert str(SerialImagePixel.u16(4)) == "U16(4)"


def test_element_type_parse():
    assert ElementType.parse("U16") is ElementType.U16
    assert ElementType.parse(ElementType.F32) is ElementType.F32
    with pytest.raises(ElementTypeError):
        ElementType.parse("i32")


def test_element_type_from_dtype():
    assert ElementType.from_dtype(np.uint8) is ElementType.U8
    assert ElementType.from_dtype("float32") is ElementType.F32
    with pytest.raises(ElementTypeError):
        ElementType.from_dtype(np.int64)


def test_max_values():
    assert ElementType.U8.max_value == 255
    assert ElementType.U16.max_value == 65535
    assert ElementType.F32.max_value == 1.0
