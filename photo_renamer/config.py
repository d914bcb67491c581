"""
設定値定義

プレビュー生成や並列処理に関する設定値をまとめます。
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass
class PipelineConfig:
    """パイプライン設定"""
    max_dimension: int = 400  # プレビューの長辺の最大ピクセル数
    jpeg_quality: int = 80
    placeholder_size: Tuple[int, int] = (400, 300)
    placeholder_background: str = "#3a3a3a"
    max_workers: int = 4
    exiftool_timeout: int = 30  # 秒


DEFAULT_CONFIG = PipelineConfig()
