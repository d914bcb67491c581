"""
Exif情報読み取りモジュール

画像のバイト列からExif情報（撮影日時）を読み取る機能を提供します。
ExifToolが利用可能な場合は外部コマンドとして実行し、バイト列を標準入力で渡します。
ExifToolが見つからない場合はPillowのExif読み取りを使用します。
"""

import io
import json
import logging
import shutil
import subprocess
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from PIL import Image

from .exceptions import ExifReadError


# Pillowで読む場合のExifタグID
EXIF_IFD_POINTER = 0x8769
PILLOW_TAG_IDS = {
    'DateTimeOriginal': 0x9003,
    'CreateDate': 0x9004,  # Exif上の名称はDateTimeDigitized
}


class ExifReader:
    """ExifTool（またはPillow）を使用したExif情報読み取りクラス"""

    def __init__(self, exiftool_path: Optional[Path] = None, timeout: int = 30):
        """
        ExifReaderを初期化

        Args:
            exiftool_path: ExifToolのパス（Noneの場合は自動検索）
            timeout: ExifTool実行のタイムアウト秒数
        """
        self.logger = logging.getLogger(__name__)
        self.timeout = timeout

        # 撮影日時を表すExifタグの優先順位リスト（ExifTool形式）
        self._datetime_tags = [
            'DateTimeOriginal',    # 撮影日時（最優先）
            'CreateDate',          # 作成日時
        ]

        self.exiftool_path = exiftool_path or self._find_exiftool()
        if self.exiftool_path:
            self.logger.debug(f"ExifTool を使用します: {self.exiftool_path}")
        else:
            self.logger.debug("ExifTool が見つからないため、PillowでExifを読み取ります")

    @property
    def uses_exiftool(self) -> bool:
        return self.exiftool_path is not None

    def _find_exiftool(self) -> Optional[Path]:
        """ExifToolの実行可能ファイルを検索（見つからない場合はNone）"""
        exiftool_name = 'exiftool.exe' if sys.platform == 'win32' else 'exiftool'
        exiftool_path = shutil.which(exiftool_name)

        if exiftool_path:
            return Path(exiftool_path)

        if sys.platform == 'win32':
            common_paths = [
                Path('C:/Windows/exiftool.exe'),
                Path('C:/Program Files/exiftool/exiftool.exe'),
                Path('C:/Program Files (x86)/exiftool/exiftool.exe'),
            ]
        else:
            common_paths = [
                Path('/usr/local/bin/exiftool'),
                Path('/usr/bin/exiftool'),
                Path('/opt/homebrew/bin/exiftool'),  # Apple Silicon Mac
            ]

        for path in common_paths:
            if path.exists() and path.is_file():
                return path

        return None

    def read_capture_datetime(self, data: bytes) -> Optional[Tuple[str, datetime]]:
        """
        バイト列から撮影日時を読み取る

        Args:
            data: 画像ファイルのバイト列

        Returns:
            (取得元タグ名, 撮影日時) のタプル（該当タグが無い場合はNone）

        Raises:
            ExifReadError: Exif読み取りでエラーが発生した場合
        """
        if not data:
            return None

        if self.exiftool_path:
            tag_values = self._run_exiftool(data, self._datetime_tags)
        else:
            tag_values = self._read_with_pillow(data)

        # 優先順位に従って撮影日時を検索
        for tag_name in self._datetime_tags:
            tag_value = tag_values.get(tag_name)
            if not tag_value:
                continue
            datetime_obj = self._parse_exif_datetime(str(tag_value))
            if datetime_obj:
                self.logger.debug(f"撮影日時タグ '{tag_name}' から取得: {datetime_obj}")
                return tag_name, datetime_obj

        return None

    def _run_exiftool(self, data: bytes, tags: List[str]) -> Dict[str, str]:
        """
        ExifToolを実行してExif情報を取得（バイト列は標準入力で渡す）

        Raises:
            ExifReadError: ExifTool実行でエラーが発生した場合
        """
        cmd = [str(self.exiftool_path), '-j']  # JSON出力
        for tag in tags:
            cmd.append('-' + tag)
        cmd.append('-')  # 標準入力から読む

        try:
            result = subprocess.run(
                cmd,
                input=data,
                capture_output=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ExifReadError("ExifTool実行がタイムアウトしました") from e
        except OSError as e:
            raise ExifReadError(f"ExifTool実行中に予期しないエラー: {str(e)}") from e

        stdout = result.stdout.decode('utf-8', errors='replace')
        if result.returncode != 0:
            stderr = result.stderr.decode('utf-8', errors='replace')
            raise ExifReadError(f"ExifTool実行エラー (終了コード: {result.returncode}): {stderr}")

        try:
            json_data = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise ExifReadError(f"ExifTool JSON出力の解析エラー: {str(e)}") from e

        if json_data:
            return json_data[0]
        return {}

    def _read_with_pillow(self, data: bytes) -> Dict[str, str]:
        """
        PillowでExifの日時タグを取得

        Raises:
            ExifReadError: 画像として開けない場合
        """
        try:
            with Image.open(io.BytesIO(data)) as img:
                exif = img.getexif()
                exif_ifd = exif.get_ifd(EXIF_IFD_POINTER)
        except Exception as e:
            raise ExifReadError(f"PillowによるExif読み取りエラー: {str(e)}") from e

        values = {}
        for tag_name, tag_id in PILLOW_TAG_IDS.items():
            value = exif_ifd.get(tag_id)
            if value:
                values[tag_name] = value
        return values

    def _parse_exif_datetime(self, datetime_str: str) -> Optional[datetime]:
        """
        Exif日時文字列をdatetimeオブジェクトに変換

        Args:
            datetime_str: Exif日時文字列（例: "2023:12:25 14:30:45" または "2023-12-25T14:30:45"）

        Returns:
            datetimeオブジェクト（解析できない場合はNone）
        """
        if not datetime_str or datetime_str.strip() == '':
            return None

        datetime_str = datetime_str.strip().rstrip('\x00')

        formats = [
            '%Y:%m:%d %H:%M:%S',      # 標準Exifフォーマット
            '%Y:%m:%d %H:%M:%S%z',    # ExifToolのタイムゾーン付き
            '%Y:%m:%d %H:%M:%S.%f',   # サブ秒付き
            '%Y-%m-%d %H:%M:%S',      # ISO形式（スペース区切り）
            '%Y-%m-%dT%H:%M:%S',      # ISO形式（T区切り）
            '%Y-%m-%dT%H:%M:%S%z',    # ISO形式（タイムゾーン付き）
            '%Y/%m/%d %H:%M:%S',      # スラッシュ区切り
            '%Y.%m.%d %H:%M:%S',      # ドット区切り
        ]

        # 末尾の 'Z' はUTCとして扱う
        if datetime_str.endswith('Z'):
            datetime_str = datetime_str[:-1] + '+00:00'

        for fmt in formats:
            try:
                return datetime.strptime(datetime_str, fmt)
            except ValueError:
                continue

        self.logger.debug(f"日時文字列の解析に失敗: '{datetime_str}'")
        return None
