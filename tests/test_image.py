"""Tests for image binarization and bit packing."""

from io import BytesIO

import pytest
from PIL import Image

from tsplprinter.errors import (
    ImageError,
    ImageSizeError,
    MalformedPackedRaster,
    UnsupportedFormat,
)
from tsplprinter.image import (
    HALF_INTENSITY,
    MAX_IMAGE_DIMENSION,
    Binarizer,
    GenericEncoder,
    PackedRasterEncoder,
    RasterEncoder,
    RasterImage,
    flatten_alpha,
    is_empty_source,
    normalize_width,
    pack_bits,
    select_encoder,
    strip_pbm_header,
)


ENCODERS = [GenericEncoder, PackedRasterEncoder]


class TestPackBits:
    """Test MSB-first bit packing."""

    def test_full_byte(self):
        """Pixel 0 is the most significant bit."""
        assert pack_bits([[1, 0, 1, 0, 1, 0, 1, 1]], 8, 1) == bytes([0b10101011])

    def test_partial_byte_zero_padded(self):
        """Unused low bits of the last byte are 0."""
        assert pack_bits([[1, 1, 0]], 3, 1) == bytes([0b11000000])

    def test_rows_are_byte_aligned(self):
        """Each row starts on a fresh byte."""
        rows = [[True] * 12, [False] * 11 + [True]]
        assert pack_bits(rows, 12, 2) == bytes([0xFF, 0xF0, 0x00, 0x10])

    def test_empty(self):
        assert pack_bits([], 0, 0) == b""


class TestRasterImage:
    """Test raster invariants."""

    def test_width_bytes_must_match(self):
        with pytest.raises(ValueError):
            RasterImage(9, 1, 1, b"\x00")

    def test_data_length_must_match(self):
        with pytest.raises(ValueError):
            RasterImage(8, 2, 1, b"\x00")

    def test_blank_is_white(self):
        raster = RasterImage.blank(10, 3)
        assert raster.width_bytes == 2
        assert raster.data == b"\xff" * 6

    def test_empty_blank(self):
        raster = RasterImage.blank()
        assert (raster.width, raster.height, raster.width_bytes, raster.data) == (0, 0, 0, b"")


class TestNormalizeWidth:
    """Test width flooring."""

    @pytest.mark.parametrize("width,target,expected", [
        (100, None, 96),
        (96, None, 96),
        (7, None, 0),
        (100, 30, 24),
        (10, 64, 64),
        (100, 8, 8),
    ])
    def test_floors_to_multiple_of_8(self, width, target, expected):
        result = normalize_width(width, target)
        assert result == expected
        assert result % 8 == 0
        assert result <= max(width, target or 0)


class TestStripPbmHeader:
    """Test P4 header skipping."""

    PAYLOAD = bytes([0xA5, 0x5A])

    def test_no_comments(self):
        blob = b"P4\n8 2\n" + self.PAYLOAD
        assert strip_pbm_header(blob, 8, 2) == self.PAYLOAD

    def test_one_comment(self):
        blob = b"P4\n# created by test\n8 2\n" + self.PAYLOAD
        assert strip_pbm_header(blob, 8, 2) == self.PAYLOAD

    def test_many_comments(self):
        blob = b"P4\n# one\n# two\n#\n8 2\n" + self.PAYLOAD
        assert strip_pbm_header(blob, 8, 2) == self.PAYLOAD

    def test_payload_starting_with_newline_byte(self):
        """Payload bytes that look like header text are not consumed."""
        payload = b"\n#"
        assert strip_pbm_header(b"P4\n8 2\n" + payload, 8, 2) == payload

    def test_missing_magic(self):
        with pytest.raises(MalformedPackedRaster, match="magic"):
            strip_pbm_header(b"P5\n8 2\n\x00\x00", 8, 2)

    def test_missing_dimensions_line(self):
        with pytest.raises(MalformedPackedRaster):
            strip_pbm_header(b"P4\n8 2", 8, 2)

    def test_wrong_payload_length(self):
        with pytest.raises(MalformedPackedRaster, match="expected 2"):
            strip_pbm_header(b"P4\n8 2\n\x00", 8, 2)


class TestFlattenAlpha:
    """Test transparency removal."""

    def test_transparent_becomes_white(self):
        img = Image.new("RGBA", (4, 4), (0, 0, 0, 0))
        flat = flatten_alpha(img)
        assert flat.mode == "RGB"
        assert flat.getpixel((0, 0)) == (255, 255, 255)

    def test_opaque_unchanged(self):
        img = Image.new("RGBA", (4, 4), (10, 20, 30, 255))
        assert flatten_alpha(img).getpixel((2, 2)) == (10, 20, 30)


@pytest.mark.parametrize("encoder_cls", ENCODERS)
class TestEncoders:
    """Both encoders follow the same bit convention."""

    def test_black_is_zero(self, encoder_cls):
        raster = Binarizer(encoder_cls()).binarize(Image.new("RGB", (8, 8), "black"))
        assert raster.data == bytes(8)

    def test_white_is_one(self, encoder_cls):
        raster = Binarizer(encoder_cls()).binarize(Image.new("RGB", (16, 2), "white"))
        assert raster.data == b"\xff" * 4

    def test_left_half_black(self, encoder_cls):
        img = Image.new("RGB", (8, 1), "white")
        for x in range(4):
            img.putpixel((x, 0), (0, 0, 0))
        raster = Binarizer(encoder_cls()).binarize(img)
        assert raster.data == bytes([0x0F])

    def test_transparent_prints_white(self, encoder_cls):
        img = Image.new("RGBA", (8, 2), (0, 0, 0, 0))
        raster = Binarizer(encoder_cls()).binarize(img)
        assert raster.data == b"\xff\xff"

    def test_threshold_on_channel_average(self, encoder_cls):
        """A pixel is white when the integer channel average reaches half intensity."""
        colors = [
            (128, 128, 128),  # average 128 -> white
            (128, 128, 127),  # average 127 -> black
            (255, 0, 0),      # average 85 -> black
            (255, 255, 0),    # average 170 -> white
            (0, 0, 0),
            (255, 255, 255),
            (127, 127, 127),
            (200, 100, 90),   # average 130 -> white
        ]
        img = Image.new("RGB", (8, 1))
        for x, color in enumerate(colors):
            img.putpixel((x, 0), color)

        raster = Binarizer(encoder_cls()).binarize(img)
        assert raster.data == bytes([0b10010101])


class TestEncoderEquivalence:
    """The packed-raster path matches the generic path."""

    def test_grey_ramp(self):
        img = Image.new("RGB", (256, 3))
        for x in range(256):
            for y in range(3):
                img.putpixel((x, y), (x, x, x))

        generic = Binarizer(GenericEncoder()).binarize(img)
        packed = Binarizer(PackedRasterEncoder()).binarize(img)
        assert generic == packed

    def test_half_intensity(self):
        assert HALF_INTENSITY == 128


class TestEncoderSelection:
    """Test capability-based encoder selection."""

    def test_packed_available_with_pillow(self):
        assert PackedRasterEncoder.is_available()
        assert isinstance(select_encoder(), PackedRasterEncoder)

    def test_generic_when_not_preferred(self):
        assert isinstance(select_encoder(prefer_packed=False), GenericEncoder)

    def test_generic_when_packed_unavailable(self, monkeypatch):
        monkeypatch.setattr(PackedRasterEncoder, "is_available", classmethod(lambda cls: False))
        assert isinstance(select_encoder(), GenericEncoder)

    def test_base_encoder_is_abstract(self):
        with pytest.raises(TypeError):
            RasterEncoder()

    def test_malformed_blob_aborts(self, monkeypatch):
        """A bad container raises instead of falling back."""
        encoder = PackedRasterEncoder()
        monkeypatch.setattr(encoder, "to_pbm", lambda image: b"P4\n8 1\n")
        with pytest.raises(MalformedPackedRaster):
            Binarizer(encoder).binarize(Image.new("RGB", (8, 1), "white"))


class TestBinarizerSizing:
    """Test width normalization and scaling."""

    def test_width_floored(self):
        raster = Binarizer().binarize(Image.new("RGB", (20, 5), "black"))
        assert (raster.width, raster.height, raster.width_bytes) == (16, 5, 2)
        assert raster.data == bytes(10)

    def test_target_width_floored(self):
        raster = Binarizer().binarize(Image.new("RGB", (20, 5), "white"), target_width=30)
        assert raster.width == 24
        assert raster.height == 5

    def test_target_height(self):
        raster = Binarizer().binarize(Image.new("RGB", (16, 16), "white"), 16, 4)
        assert raster.height == 4
        assert len(raster.data) == 2 * 4

    def test_narrow_image_yields_zero_width(self):
        raster = Binarizer().binarize(Image.new("RGB", (5, 3), "black"))
        assert (raster.width, raster.height, raster.data) == (0, 3, b"")

    @pytest.mark.parametrize("size", [(8, 1), (13, 7), (64, 3), (100, 2)])
    def test_raster_invariants(self, size):
        raster = Binarizer().binarize(Image.new("RGB", size, "grey"))
        assert raster.width % 8 == 0
        assert raster.width_bytes == (raster.width + 7) // 8
        assert len(raster.data) == raster.width_bytes * raster.height


class TestBinarizerSources:
    """Test loading from different sources."""

    def test_none_yields_blank(self):
        raster = Binarizer().binarize(None)
        assert raster == RasterImage.blank(0, 0)

    def test_empty_bytes_yields_blank_of_target_size(self):
        raster = Binarizer().binarize(b"", target_width=20, target_height=3)
        assert raster == RasterImage.blank(16, 3)
        assert raster.data == b"\xff" * 6

    def test_empty_file_yields_blank(self, tmp_path):
        path = tmp_path / "empty.png"
        path.write_bytes(b"")
        assert Binarizer().binarize(path) == RasterImage.blank(0, 0)
        assert Binarizer().binarize(str(path), 8, 2) == RasterImage.blank(8, 2)

    def test_empty_stream_yields_blank(self):
        assert Binarizer().binarize(BytesIO(b"")) == RasterImage.blank(0, 0)

    def test_exhausted_stream_yields_blank(self):
        stream = BytesIO(b"already read")
        stream.seek(0, 2)
        assert Binarizer().binarize(stream, 16, 1) == RasterImage.blank(16, 1)

    def test_empty_check_keeps_stream_position(self, png_bytes):
        stream = BytesIO(png_bytes(Image.new("RGB", (8, 1), "black")))
        assert not is_empty_source(stream)
        assert stream.tell() == 0
        assert Binarizer().binarize(stream).data == b"\x00"

    def test_load_from_bytes(self, png_bytes):
        data = png_bytes(Image.new("RGB", (8, 2), "black"))
        assert Binarizer().binarize(data).data == b"\x00\x00"

    def test_load_from_path(self, tmp_path):
        path = tmp_path / "label.png"
        Image.new("RGB", (16, 1), "white").save(path)
        assert Binarizer().binarize(path).data == b"\xff\xff"
        assert Binarizer().binarize(str(path)).width == 16

    def test_load_from_file_object(self, tmp_path):
        path = tmp_path / "label.png"
        Image.new("RGB", (8, 1), "black").save(path)
        with open(path, "rb") as f:
            assert Binarizer().binarize(f).data == b"\x00"

    def test_palette_with_transparency(self, png_bytes):
        img = Image.new("P", (8, 1), 0)
        img.info["transparency"] = 0
        raster = Binarizer().binarize(png_bytes(img))
        assert raster.data == b"\xff"

    def test_undecodable_bytes(self):
        with pytest.raises(UnsupportedFormat):
            Binarizer().binarize(b"fake png")

    def test_unsupported_format_is_image_error(self):
        assert issubclass(UnsupportedFormat, ImageError)
        assert issubclass(MalformedPackedRaster, ImageError)

    def test_unsupported_source_type(self):
        with pytest.raises(UnsupportedFormat, match="Unsupported source type"):
            Binarizer().binarize(12345)

    def test_missing_file_raises_os_error(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Binarizer().binarize(tmp_path / "missing.png")

    def test_truncated_file(self, tmp_path, png_bytes):
        img = Image.new("RGB", (64, 64))
        for x in range(64):
            for y in range(64):
                img.putpixel((x, y), ((x * 7 + y * 13) % 256, (x * y) % 256, (x ^ y) * 4 % 256))
        data = png_bytes(img)
        with pytest.raises(UnsupportedFormat):
            Binarizer().binarize(data[: len(data) // 2])


class TestImageSizeLimits:
    """Test image size validation before decoding."""

    def test_exceeds_max_width_raises_error(self):
        img = Image.new("1", (MAX_IMAGE_DIMENSION + 1, 1), color=1)
        with pytest.raises(ImageSizeError, match="dimensions.*exceed maximum"):
            Binarizer().binarize(img)

    def test_exceeds_max_pixels_raises_error(self):
        img = Image.new("1", (5000, 2001), color=1)
        with pytest.raises(ImageSizeError, match="pixel count.*exceeds"):
            Binarizer().binarize(img)

    def test_limit_checked_on_encoded_input(self, png_bytes):
        data = png_bytes(Image.new("1", (1, MAX_IMAGE_DIMENSION + 1), color=1))
        with pytest.raises(ImageSizeError):
            Binarizer().binarize(data)

    def test_oversized_file_is_closed(self, tmp_path, monkeypatch):
        path = tmp_path / "tall.png"
        Image.new("1", (1, MAX_IMAGE_DIMENSION + 1), color=1).save(path)

        closed = []
        original_close = Image.Image.close

        def tracking_close(img):
            closed.append(img)
            original_close(img)

        monkeypatch.setattr(Image.Image, "close", tracking_close)
        with pytest.raises(ImageSizeError):
            Binarizer().binarize(path)
        assert closed

    def test_caller_image_not_closed(self, monkeypatch):
        img = Image.new("1", (1, MAX_IMAGE_DIMENSION + 1), color=1)
        closed = []
        monkeypatch.setattr(Image.Image, "close", lambda self: closed.append(self))
        with pytest.raises(ImageSizeError):
            Binarizer().binarize(img)
        assert closed == []

    def test_image_size_error_is_value_error(self):
        assert isinstance(ImageSizeError("test"), ValueError)
