import io

import pytest
from PIL import Image

from print_crop_tool.compositor import compose
from print_crop_tool.image_io import (
    compute_fingerprint, decode_image, encode_composite, export_filename,
    load_asset, read_asset_file, save_composite, unique_path,
)
from print_crop_tool.models import (
    SelectionMode, SelectionRect, TargetSpec, UnsupportedImageError,
)
from tests.helpers.images import encode, noise_image

TARGET = TargetSpec(8, 10, 10)


@pytest.fixture
def result():
    return compose(noise_image(80, 100), SelectionRect(0, 0, 100, 100), SelectionMode.CROP, TARGET)


# --- Input validation ---

def test_rejects_unsupported_declared_type():
    data = encode(Image.new("RGB", (10, 10)), "PNG")
    with pytest.raises(UnsupportedImageError, match="image/gif type is not supported"):
        load_asset(data, mime_type="image/gif")


def test_rejects_unsupported_content():
    data = encode(Image.new("P", (10, 10)), "GIF")
    with pytest.raises(UnsupportedImageError):
        load_asset(data)


def test_rejects_undecodable_content():
    with pytest.raises(UnsupportedImageError):
        load_asset(b"plain text", name="notes.png", mime_type="image/png")


def test_rejects_declared_type_mismatch():
    data = encode(Image.new("RGB", (10, 10)), "PNG")
    with pytest.raises(UnsupportedImageError, match="does not match"):
        load_asset(data, mime_type="image/jpeg")


def test_load_png_asset():
    data = encode(Image.new("RGB", (120, 150)), "PNG")
    asset = load_asset(data, name="photo.png")

    assert asset.mime_type == "image/png"
    assert asset.name == "photo.png"
    assert asset.asset_id == compute_fingerprint(data)
    assert (asset.native_width, asset.native_height) == (120, 150)
    assert asset.size_label == f"{len(data) / 1024:.2f} KB"


def test_jpg_mime_alias_is_accepted():
    data = encode(Image.new("RGB", (10, 10)), "JPEG")
    assert load_asset(data, mime_type="image/JPG").mime_type == "image/jpg"


def test_read_asset_file(tmp_path):
    path = tmp_path / "holiday.jpeg"
    path.write_bytes(encode(Image.new("RGB", (30, 40)), "JPEG", dpi=(72, 72)))
    asset = read_asset_file(path)

    assert asset.name == "holiday.jpeg"
    assert asset.mime_type == "image/jpeg"
    assert asset.metadata.ppi == pytest.approx(72)


def test_rotated_jpeg_is_decoded_upright():
    exif = Image.Exif()
    exif[0x0112] = 6
    data = encode(Image.new("RGB", (100, 80)), "JPEG", exif=exif)

    assert decode_image(data).size == (80, 100)
    asset = load_asset(data, mime_type="image/jpeg")
    assert (asset.native_width, asset.native_height) == (80, 100)


def test_fingerprint_depends_on_content():
    a = encode(noise_image(20, 20, seed=1), "PNG")
    b = encode(noise_image(20, 20, seed=2), "PNG")
    assert compute_fingerprint(a) == compute_fingerprint(a)
    assert compute_fingerprint(a) != compute_fingerprint(b)


def test_decode_image_rejects_gif():
    with pytest.raises(UnsupportedImageError):
        decode_image(encode(Image.new("P", (10, 10)), "GIF"))


# --- Export ---

def test_export_filename():
    assert export_filename(TargetSpec(8, 10, 300), "JPEG") == "8x10_photo_print_quality.jpg"
    assert export_filename(TargetSpec(16, 20, 300), "PNG") == "16x20_photo_print_quality.png"


def test_encode_jpeg_keeps_size_and_dpi(result):
    data = encode_composite(result, "JPEG")
    with Image.open(io.BytesIO(data)) as img:
        assert img.format == "JPEG"
        assert img.size == (80, 100)
        assert img.info["dpi"] == pytest.approx((10, 10))


def test_encode_png_keeps_size_and_dpi(result):
    data = encode_composite(result, "PNG")
    with Image.open(io.BytesIO(data)) as img:
        assert img.format == "PNG"
        assert img.size == (80, 100)
        assert img.info["dpi"][0] == pytest.approx(10, abs=0.1)


def test_encode_rejects_unknown_format(result):
    with pytest.raises(ValueError):
        encode_composite(result, "GIF")


def test_save_composite_never_overwrites(tmp_path, result):
    first = save_composite(result, tmp_path, "JPEG")
    second = save_composite(result, tmp_path, "JPEG")

    assert first.name == "8x10_photo_print_quality.jpg"
    assert second.name == "8x10_photo_print_quality-01.jpg"
    assert first.stat().st_size > 0


def test_unique_path(tmp_path):
    path = tmp_path / "out.png"
    assert unique_path(path) == path
    path.touch()
    (tmp_path / "out-01.png").touch()
    assert unique_path(path) == tmp_path / "out-02.png"
