"""
ThumbnailSynthesizerのプロパティベーステスト

プレビューの長辺が上限以下で縦横比が保たれること、RAWのフォールバックが
決定的なプレースホルダーになることを検証します。
"""

import io
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import rawpy
from hypothesis import given, strategies as st
from hypothesis import settings
from PIL import Image

from photo_renamer.config import PipelineConfig
from photo_renamer.thumbnail import ThumbnailSynthesizer, compute_bounded_size


MAX_DIMENSION = 400


def encode_image(width, height, fmt='PNG', mode='RGB', color=(200, 120, 40)):
    """テスト用の画像をエンコード"""
    if mode == 'RGBA':
        color = color + (128,)
    img = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def decode_size(data):
    with Image.open(io.BytesIO(data)) as img:
        return img.format, img.size


def mock_rawpy_imread(thumb=None, error=None):
    """rawpy.imreadの戻り値（コンテキストマネージャー）を作成"""
    raw = MagicMock()
    if error is not None:
        raw.extract_thumb.side_effect = error
    else:
        raw.extract_thumb.return_value = thumb
    context = MagicMock()
    context.__enter__.return_value = raw
    return context


class TestBoundedSizeProperties:
    """compute_bounded_sizeのプロパティテスト"""

    @settings(max_examples=200)
    @given(
        width=st.integers(min_value=1, max_value=20000),
        height=st.integers(min_value=1, max_value=20000),
        max_dimension=st.integers(min_value=1, max_value=2000)
    )
    def test_longer_edge_is_bounded_and_aspect_preserved(self, width, height, max_dimension):
        """
        任意のサイズに対して、長辺は上限以下で、縦横比は丸め誤差の範囲で保たれるべきである。
        """
        new_width, new_height = compute_bounded_size(width, height, max_dimension)

        assert max(new_width, new_height) <= max(max_dimension, 1)
        assert new_width >= 1 and new_height >= 1

        scale = min(1.0, max_dimension / max(width, height))
        assert abs(new_width - width * scale) <= 1
        assert abs(new_height - height * scale) <= 1

    @settings(max_examples=100)
    @given(
        width=st.integers(min_value=1, max_value=MAX_DIMENSION),
        height=st.integers(min_value=1, max_value=MAX_DIMENSION)
    )
    def test_no_upscaling(self, width, height):
        """上限より小さい画像は拡大しないべきである。"""
        assert compute_bounded_size(width, height, MAX_DIMENSION) == (width, height)

    def test_portrait_clamps_height(self):
        """縦長の画像は高さが上限になる"""
        assert compute_bounded_size(3000, 4000, 400) == (300, 400)

    def test_landscape_clamps_width(self):
        """横長の画像は幅が上限になる"""
        assert compute_bounded_size(6000, 4000, 400) == (400, 267)

    def test_square_clamps_both(self):
        """正方形の画像は両辺が上限になる"""
        assert compute_bounded_size(1000, 1000, 400) == (400, 400)


class TestThumbnailSynthesizerProperties:
    """ThumbnailSynthesizerのプロパティテスト"""

    def setup_method(self):
        self.synthesizer = ThumbnailSynthesizer(PipelineConfig(max_dimension=MAX_DIMENSION))

    @settings(max_examples=30, deadline=None)
    @given(
        width=st.integers(min_value=1, max_value=1200),
        height=st.integers(min_value=1, max_value=1200),
        mode=st.sampled_from(['RGB', 'RGBA', 'L'])
    )
    def test_standard_preview_is_bounded(self, width, height, mode):
        """
        任意のデコード可能な画像に対して、プレビューの長辺は上限以下で縦横比が保たれるべきである。
        """
        data = encode_image(width, height, mode=mode)

        result = self.synthesizer.synthesize(data, "image.png", is_raw=False)

        fmt, (thumb_width, thumb_height) = decode_size(result.data)
        assert fmt == 'JPEG'
        assert not result.is_placeholder
        assert (result.width, result.height) == (thumb_width, thumb_height)
        assert max(thumb_width, thumb_height) <= MAX_DIMENSION

        scale = min(1.0, MAX_DIMENSION / max(width, height))
        assert abs(thumb_width - width * scale) <= 1
        assert abs(thumb_height - height * scale) <= 1

    def test_undecodable_standard_image_gives_placeholder(self):
        """デコードできない標準画像はプレースホルダーになり、例外は送出されない"""
        result = self.synthesizer.synthesize(b'not an image', "broken.jpg", is_raw=False)

        assert result.is_placeholder
        assert decode_size(result.data)[0] == 'JPEG'

    @settings(max_examples=20, deadline=None)
    @given(name=st.text(
        alphabet=st.characters(whitelist_categories=('Lu', 'Ll', 'Nd')),
        min_size=1,
        max_size=30
    ))
    def test_raw_fallback_is_deterministic(self, name):
        """
        埋め込みプレビューが取得できない場合、同じファイル名からは常に同じプレースホルダーが生成されるべきである。
        """
        filename = f"{name}.CR2"

        first = self.synthesizer.synthesize(b'not a raw container', filename, is_raw=True)
        second = self.synthesizer.synthesize(b'still not a raw container', filename, is_raw=True)

        assert first.is_placeholder and second.is_placeholder
        assert first.data == second.data
        assert first.data == self.synthesizer.placeholder(filename).data

    def test_placeholder_differs_by_filename(self):
        """プレースホルダーにはファイル名が描画される"""
        first = self.synthesizer.placeholder("IMG_0001.CR2")
        second = self.synthesizer.placeholder("IMG_0002_LONGER_NAME.CR2")

        assert first.data != second.data
        assert (first.width, first.height) == PipelineConfig().placeholder_size

    def test_raw_embedded_jpeg_preview_is_resized(self):
        """埋め込みJPEGプレビューがあれば縮小して使う"""
        thumb = SimpleNamespace(format=rawpy.ThumbFormat.JPEG, data=encode_image(1600, 1200, fmt='JPEG'))

        with patch('photo_renamer.thumbnail.rawpy.imread', return_value=mock_rawpy_imread(thumb=thumb)):
            result = self.synthesizer.synthesize(b'raw bytes', "IMG_0001.NEF", is_raw=True)

        assert not result.is_placeholder
        assert decode_size(result.data) == ('JPEG', (400, 300))

    def test_raw_without_embedded_preview_gives_placeholder(self):
        """埋め込みプレビューが無いRAWはプレースホルダーになる"""
        context = mock_rawpy_imread(error=rawpy.LibRawNoThumbnailError())

        with patch('photo_renamer.thumbnail.rawpy.imread', return_value=context):
            result = self.synthesizer.synthesize(b'raw bytes', "IMG_0002.ARW", is_raw=True)

        assert result.is_placeholder
        assert result.data == self.synthesizer.placeholder("IMG_0002.ARW").data

    def test_raw_with_corrupt_preview_gives_placeholder(self):
        """埋め込みプレビューがデコードできない場合もプレースホルダーになる"""
        thumb = SimpleNamespace(format=rawpy.ThumbFormat.JPEG, data=b'\xff\xd8 broken jpeg')

        with patch('photo_renamer.thumbnail.rawpy.imread', return_value=mock_rawpy_imread(thumb=thumb)):
            result = self.synthesizer.synthesize(b'raw bytes', "IMG_0003.DNG", is_raw=True)

        assert result.is_placeholder

    def test_data_uri(self):
        """data URI形式に変換できる"""
        result = self.synthesizer.placeholder("IMG_0001.CR2")

        assert result.to_data_uri().startswith("data:image/jpeg;base64,")
