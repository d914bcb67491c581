"""
サムネイル生成モジュール

画像のバイト列から長辺が一定サイズ以下のプレビューJPEGを生成します。
RAW画像は埋め込みプレビューを取り出して縮小し、取り出せない場合は
"RAW" とファイル名を描いたプレースホルダー画像を生成します。
"""

import io
import logging
from typing import Optional, Tuple

import rawpy
from PIL import Image, ImageDraw

from .config import DEFAULT_CONFIG, PipelineConfig
from .models import ThumbnailResult


def compute_bounded_size(width: int, height: int, max_dimension: int) -> Tuple[int, int]:
    """
    縦横比を保ったまま長辺がmax_dimension以下になるサイズを計算（拡大はしない）

    Args:
        width: 元の幅
        height: 元の高さ
        max_dimension: 長辺の最大値

    Returns:
        (幅, 高さ)
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"不正な画像サイズです: {width}x{height}")

    if max(width, height) <= max_dimension:
        return width, height

    if width <= height:
        new_height = max_dimension
        new_width = max(1, round(width * max_dimension / height))
    else:
        new_width = max_dimension
        new_height = max(1, round(height * max_dimension / width))
    return new_width, new_height


class ThumbnailSynthesizer:
    """プレビュー画像を生成するクラス"""

    def __init__(self, config: Optional[PipelineConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.logger = logging.getLogger(__name__)

    def synthesize(self, data: bytes, name: str, is_raw: bool) -> ThumbnailResult:
        """
        プレビュー画像を生成（例外は送出しない）

        Args:
            data: 画像のバイト列
            name: ファイル名（プレースホルダーに描画）
            is_raw: RAW画像の場合True

        Returns:
            生成結果
        """
        if is_raw:
            return self._synthesize_raw(data, name)

        try:
            with Image.open(io.BytesIO(data)) as img:
                return self._resize_and_encode(img)
        except Exception as e:
            self.logger.warning(f"プレビュー生成に失敗しました: {name} - {e}")
            return self.placeholder(name, label="ERR")

    def _synthesize_raw(self, data: bytes, name: str) -> ThumbnailResult:
        try:
            preview = self._extract_embedded_preview(data)
        except Exception as e:
            self.logger.warning(f"RAW埋め込みプレビューの取得に失敗しました: {name} - {e}")
            return self.placeholder(name)

        if preview is None:
            self.logger.debug(f"RAW埋め込みプレビューがありません: {name}")
            return self.placeholder(name)

        try:
            return self._resize_and_encode(preview)
        except Exception as e:
            self.logger.warning(f"RAW埋め込みプレビューのデコードに失敗しました: {name} - {e}")
            return self.placeholder(name)
        finally:
            preview.close()

    def _extract_embedded_preview(self, data: bytes) -> Optional[Image.Image]:
        """
        RAWコンテナから埋め込みプレビューを取り出す

        Returns:
            プレビュー画像（埋め込みプレビューが無い場合はNone）
        """
        try:
            with rawpy.imread(io.BytesIO(data)) as raw:
                thumb = raw.extract_thumb()
        except (rawpy.LibRawNoThumbnailError, rawpy.LibRawUnsupportedThumbnailError):
            return None

        if thumb.format == rawpy.ThumbFormat.JPEG:
            img = Image.open(io.BytesIO(thumb.data))
            img.load()
            return img
        if thumb.format == rawpy.ThumbFormat.BITMAP:
            return Image.fromarray(thumb.data)
        return None

    def _resize_and_encode(self, img: Image.Image) -> ThumbnailResult:
        width, height = img.size
        size = compute_bounded_size(width, height, self.config.max_dimension)

        img = self._to_rgb(img)
        if size != img.size:
            img = img.resize(size, Image.Resampling.LANCZOS)
        return ThumbnailResult(data=self._encode(img), width=size[0], height=size[1])

    @staticmethod
    def _to_rgb(img: Image.Image) -> Image.Image:
        """JPEG保存用にRGBへ変換（透過部分は白背景に合成）"""
        if img.mode in ('RGBA', 'LA', 'P'):
            if img.mode == 'P':
                img = img.convert('RGBA')
            background = Image.new('RGB', img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[-1])
            return background
        if img.mode != 'RGB':
            return img.convert('RGB')
        return img

    def _encode(self, img: Image.Image) -> bytes:
        buffer = io.BytesIO()
        img.save(buffer, format='JPEG', quality=self.config.jpeg_quality)
        return buffer.getvalue()

    def placeholder(self, name: str, label: str = "RAW") -> ThumbnailResult:
        """
        プレースホルダー画像を生成

        同じファイル名からは常に同じバイト列が得られます。
        """
        try:
            img = self._draw_placeholder([label, name])
        except UnicodeError:
            # ビットマップフォントはLatin-1以外を描画できない
            safe_name = name.encode('ascii', 'replace').decode('ascii')
            img = self._draw_placeholder([label, safe_name])

        return ThumbnailResult(data=self._encode(img), width=img.width, height=img.height, is_placeholder=True)

    def _draw_placeholder(self, lines) -> Image.Image:
        size = self.config.placeholder_size
        img = Image.new('RGB', size, self.config.placeholder_background)
        draw = ImageDraw.Draw(img)

        heights = []
        widths = []
        for line in lines:
            left, top, right, bottom = draw.textbbox((0, 0), line)
            widths.append(right - left)
            heights.append(bottom - top)

        spacing = 8
        total_height = sum(heights) + spacing * (len(lines) - 1)
        y = (size[1] - total_height) // 2
        for line, line_width, line_height in zip(lines, widths, heights):
            x = max(0, (size[0] - line_width) // 2)
            draw.text((x, y), line, fill="#ffffff")
            y += line_height + spacing

        return img
