"""
ファイル名割り当てモジュール

撮影日時順に並んだ画像とデータセットの行を位置（インデックス）で対応付け、
選択された列の値から各画像の出力ファイル名を決定します。
"""

import logging
from collections import Counter
from typing import Dict, List, Optional

from .models import Asset, TabularDataset


DEFAULT_EXTENSION = 'jpg'


class NameProjector:
    """画像に出力ファイル名を割り当てるクラス"""

    def __init__(self):
        """NameProjectorを初期化"""
        self.logger = logging.getLogger(__name__)

    def project(self, assets: List[Asset], dataset: Optional[TabularDataset],
                column: Optional[str]) -> int:
        """
        全画像の出力ファイル名を再計算

        i番目の画像にはデータセットのi番目の行が対応します。
        値が得られない画像の出力ファイル名はNoneになります。

        Args:
            assets: 撮影日時順の画像リスト
            dataset: データセット
            column: ファイル名に使う列名

        Returns:
            出力ファイル名が割り当てられた画像の数
        """
        if not column or dataset is None or dataset.is_empty:
            for asset in assets:
                asset.target_name = None
            return 0

        named = 0
        for index, asset in enumerate(assets):
            asset.target_name = self.target_name_for(asset, dataset.row(index), column)
            if asset.target_name is not None:
                named += 1

        self._warn_duplicates(assets)
        return named

    @staticmethod
    def target_name_for(asset: Asset, row: Optional[Dict[str, str]], column: str) -> Optional[str]:
        """
        1枚分の出力ファイル名を計算

        Args:
            asset: 対象の画像
            row: 対応するデータセットの行（無い場合はNone）
            column: ファイル名に使う列名

        Returns:
            "<セル値>.<小文字の拡張子>"（セル値が空の場合はNone）
        """
        if row is None:
            return None

        value = row.get(column)
        if value is None or not value.strip():
            return None

        extension = asset.extension or DEFAULT_EXTENSION
        return f"{value}.{extension}"

    def _warn_duplicates(self, assets: List[Asset]) -> None:
        counts = Counter(asset.target_name for asset in assets if asset.target_name)
        for name, count in counts.items():
            if count > 1:
                self.logger.warning(f"出力ファイル名が重複しています（後の画像で上書きされます）: {name} ({count}枚)")
