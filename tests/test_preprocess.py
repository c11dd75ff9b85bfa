"""Tests for cover-fit resizing."""

import io

import pytest
from PIL import Image

from zombie_transformer.errors import DecodeError, ErrorKind
from zombie_transformer.preprocess import fit_cover, prepare_image


class TestFitCover:
    def test_wide_image_is_cropped_to_target(self):
        img = Image.new("RGB", (400, 100), (255, 0, 0))
        result = fit_cover(img, (200, 200))
        assert result.size == (200, 200)

    def test_upscales_small_image(self):
        img = Image.new("RGB", (10, 10))
        result = fit_cover(img, (1024, 1024))
        assert result.size == (1024, 1024)

    def test_same_size_is_unchanged(self):
        img = Image.new("RGB", (1344, 768))
        result = fit_cover(img, (1344, 768))
        assert result.size == (1344, 768)

    def test_crop_keeps_centre(self):
        # left third red, middle third green, right third blue
        img = Image.new("RGB", (300, 100), (0, 255, 0))
        img.paste((255, 0, 0), (0, 0, 100, 100))
        img.paste((0, 0, 255), (200, 0, 300, 100))
        result = fit_cover(img, (100, 100))
        assert result.getpixel((50, 50)) == (0, 255, 0)

    def test_awkward_ratio_never_short(self):
        img = Image.new("RGB", (333, 777))
        result = fit_cover(img, (1216, 832))
        assert result.size == (1216, 832)


class TestPrepareImage:
    def test_matches_nearest_dimensions(self, tmp_path, make_image):
        path = tmp_path / "wide.jpg"
        path.write_bytes(make_image((1920, 1080), fmt="JPEG"))

        prepared = prepare_image(path)

        assert prepared.size == (1344, 768)
        assert prepared.original_size == (1920, 1080)
        assert prepared.media_type == "image/png"
        decoded = Image.open(io.BytesIO(prepared.data))
        assert decoded.format == "PNG"
        assert decoded.size == (1344, 768)

    def test_explicit_target(self, tmp_path, make_image):
        path = tmp_path / "square.png"
        path.write_bytes(make_image((50, 50)))
        prepared = prepare_image(path, (640, 1536))
        assert Image.open(io.BytesIO(prepared.data)).size == (640, 1536)

    def test_palette_image_converted(self, tmp_path, make_image):
        path = tmp_path / "palette.png"
        path.write_bytes(make_image((64, 64), color=3, mode="P"))
        prepared = prepare_image(path)
        assert Image.open(io.BytesIO(prepared.data)).mode == "RGB"

    def test_rgba_keeps_alpha(self, tmp_path, make_image):
        path = tmp_path / "alpha.png"
        path.write_bytes(make_image((64, 64), color=(1, 2, 3, 128), mode="RGBA"))
        prepared = prepare_image(path)
        assert Image.open(io.BytesIO(prepared.data)).mode == "RGBA"

    def test_garbage_bytes_raise_decode_error(self, tmp_path):
        path = tmp_path / "fake.png"
        path.write_bytes(b"definitely not an image")
        with pytest.raises(DecodeError, match="Could not read image") as info:
            prepare_image(path)
        assert info.value.kind is ErrorKind.DECODE
        assert info.value.source == str(path)

    def test_exif_orientation_applied_before_matching(self, tmp_path):
        # a portrait shot stored landscape with "rotate 90 CW" in its EXIF data
        exif = Image.Exif()
        exif[0x0112] = 6
        buffer = io.BytesIO()
        Image.new("RGB", (1920, 1080), (10, 20, 30)).save(buffer, format="JPEG", exif=exif)
        path = tmp_path / "phone.jpg"
        path.write_bytes(buffer.getvalue())

        prepared = prepare_image(path)

        assert prepared.original_size == (1080, 1920)
        assert prepared.size == (768, 1344)
        assert Image.open(io.BytesIO(prepared.data)).size == (768, 1344)
