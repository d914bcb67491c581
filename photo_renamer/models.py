"""
データモデル定義

CSV Photo Renamerで使用するデータクラスを定義します。
"""

import base64
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple


class FormatClass(Enum):
    """画像フォーマットの分類"""
    STANDARD = 'standard'
    RAW = 'raw'
    UNSUPPORTED = 'unsupported'


@dataclass
class StorageEntry:
    """ストレージハンドルが列挙する1エントリの情報"""
    name: str
    kind: str  # 'file' or 'directory'
    readable: bool = True
    content_type: Optional[str] = None
    size: int = 0
    last_modified: Optional[datetime] = None

    @property
    def is_file(self) -> bool:
        return self.kind == 'file'


@dataclass
class Asset:
    """ソース画像1枚の情報"""
    source_ref: str  # ソースハンドル上のエントリ名（バイト列は保持しない）
    original_name: str
    capture_time: datetime
    format_class: FormatClass
    thumbnail: Optional[bytes] = None
    target_name: Optional[str] = None

    @property
    def is_raw(self) -> bool:
        return self.format_class == FormatClass.RAW

    @property
    def extension(self) -> str:
        """小文字の拡張子（ドットなし）。拡張子がない場合は空文字列"""
        stem, dot, ext = self.original_name.rpartition('.')
        if not dot or not stem:
            return ''
        return ext.lower()


@dataclass(frozen=True)
class TabularDataset:
    """表形式データセット（読み込み後は不変）"""
    fields: Tuple[str, ...]
    rows: Tuple[Dict[str, str], ...]

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def row(self, index: int) -> Optional[Dict[str, str]]:
        """位置指定で行を取得（範囲外はNone）"""
        if 0 <= index < len(self.rows):
            return self.rows[index]
        return None


@dataclass
class IngestionSummary:
    """取り込み結果のサマリー"""
    entries_found: int
    assets_loaded: int
    raw_count: int
    skipped: int

    @property
    def has_raw(self) -> bool:
        return self.raw_count > 0


@dataclass(frozen=True)
class CaptureTimeResult:
    """撮影日時の抽出結果（常に値を持つ）"""
    capture_time: datetime
    source: str  # 取得元タグ名、またはフォールバック時は 'last_modified'

    @property
    def used_fallback(self) -> bool:
        return self.source == 'last_modified'


@dataclass(frozen=True)
class ThumbnailResult:
    """サムネイル生成結果（常にエンコード済みJPEGを持つ）"""
    data: bytes
    width: int
    height: int
    is_placeholder: bool = False

    def to_data_uri(self) -> str:
        """UI表示用のdata URIに変換"""
        encoded = base64.b64encode(self.data).decode('ascii')
        return f"data:image/jpeg;base64,{encoded}"


@dataclass
class ExportOutcome:
    """エクスポート結果"""
    succeeded: int = 0
    failed: int = 0
    last_item: Optional[str] = None
    cancelled: bool = False
    errors: List[Tuple[str, str]] = field(default_factory=list)  # (file_name, error_message)

    @property
    def attempted(self) -> int:
        return self.succeeded + self.failed
