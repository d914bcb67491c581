"""
メタデータ抽出モジュール

画像の撮影日時を取得します。Exifの撮影日時タグが読めない場合は
ストレージ上の最終更新日時にフォールバックするため、呼び出し側に例外を返しません。
"""

import logging
from datetime import datetime
from typing import Optional

from .exif_reader import ExifReader
from .models import CaptureTimeResult


FALLBACK_SOURCE = 'last_modified'


class MetadataExtractor:
    """撮影日時を抽出するクラス"""

    def __init__(self, exif_reader: Optional[ExifReader] = None):
        """
        MetadataExtractorを初期化

        Args:
            exif_reader: Exif読み取りクラス（Noneの場合は新規作成）
        """
        self.exif_reader = exif_reader or ExifReader()
        self.logger = logging.getLogger(__name__)

    def extract(self, data: bytes, last_modified: Optional[datetime],
                name: str = '') -> CaptureTimeResult:
        """
        撮影日時を抽出

        Args:
            data: 画像のバイト列
            last_modified: ストレージ上の最終更新日時
            name: ログ用のファイル名

        Returns:
            撮影日時と取得元
        """
        try:
            found = self.exif_reader.read_capture_datetime(data)
        except Exception as e:
            self.logger.warning(f"撮影日時の読み取りに失敗しました（更新日時を使用）: {name} - {e}")
            found = None

        if found:
            tag_name, capture_time = found
            return CaptureTimeResult(capture_time=self._to_naive_local(capture_time), source=tag_name)

        self.logger.debug(f"撮影日時が見つかりません（更新日時を使用）: {name}")
        return CaptureTimeResult(capture_time=self._fallback_time(last_modified), source=FALLBACK_SOURCE)

    @staticmethod
    def _to_naive_local(value: datetime) -> datetime:
        # 更新日時（naive、ローカル時刻）と比較できるように揃える
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value

    @staticmethod
    def _fallback_time(last_modified: Optional[datetime]) -> datetime:
        if last_modified is None:
            return datetime.fromtimestamp(0)
        return MetadataExtractor._to_naive_local(last_modified)
