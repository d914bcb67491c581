"""
エクスポート処理モジュール

各画像の元のバイト列を、割り当てられた出力ファイル名で出力先フォルダにコピーします。
1枚の失敗でバッチ全体を中断せず、成功数と失敗数を数えて最後に報告します。
"""

import logging
import threading
from typing import List, Optional

from .exceptions import ValidationError
from .models import Asset, ExportOutcome
from .storage import StorageHandle


class BatchExporter:
    """画像を出力先フォルダへコピーするクラス"""

    def __init__(self):
        """BatchExporterを初期化"""
        self.logger = logging.getLogger(__name__)

    def export(self, assets: List[Asset], source: StorageHandle, destination: StorageHandle,
               progress_logger=None, cancel_event: Optional[threading.Event] = None) -> ExportOutcome:
        """
        画像を出力先フォルダへコピー

        Args:
            assets: 撮影日時順の画像リスト（target_name設定済み）
            source: ソースフォルダのハンドル
            destination: 出力先フォルダのハンドル
            progress_logger: 進捗表示用のロガー
            cancel_event: セットされると次の画像の前で処理を中断する

        Returns:
            エクスポート結果

        Raises:
            ValidationError: ソースまたは出力先が無い場合、画像が無い場合
        """
        if source is None:
            raise ValidationError("ソースフォルダが選択されていません")
        if destination is None:
            raise ValidationError("出力先フォルダが選択されていません")
        if not assets:
            raise ValidationError("エクスポートする画像がありません")

        outcome = ExportOutcome()
        self.logger.info(f"エクスポート開始: {len(assets)}枚 -> {destination.name}")

        for i, asset in enumerate(assets):
            if cancel_event is not None and cancel_event.is_set():
                outcome.cancelled = True
                self.logger.info(f"エクスポートがキャンセルされました: {outcome.attempted}/{len(assets)}枚処理済み")
                break

            if progress_logger:
                progress_logger.log_export_progress(len(assets), i, asset.original_name)

            outcome.last_item = asset.original_name

            if not asset.target_name:
                outcome.failed += 1
                error_msg = "出力ファイル名がありません"
                outcome.errors.append((asset.original_name, error_msg))
                self._log_item_failure(progress_logger, f"コピースキップ: {asset.original_name} - {error_msg}")
                continue

            try:
                self._copy_single_asset(asset, source, destination)
                outcome.succeeded += 1
            except Exception as e:
                outcome.failed += 1
                error_msg = f"{type(e).__name__}: {e}"
                outcome.errors.append((asset.original_name, error_msg))
                self._log_item_failure(progress_logger, f"ファイルコピーエラー: {asset.original_name} - {error_msg}")

        self.logger.info(
            f"エクスポート完了: 成功={outcome.succeeded}, 失敗={outcome.failed}"
        )
        if not progress_logger:
            # progress_loggerがある場合はlog_export_completeがエラー一覧を記録する
            for file_name, error_msg in outcome.errors:
                self.logger.error(f"  - {file_name}: {error_msg}")
        return outcome

    def _log_item_failure(self, progress_logger, message: str) -> None:
        if progress_logger:
            progress_logger.log_debug(message)
        else:
            self.logger.debug(message)

    def _copy_single_asset(self, asset: Asset, source: StorageHandle, destination: StorageHandle) -> None:
        """
        単一画像をコピー

        読み取りや書き込みに失敗した場合は出力先にエントリを残しません。
        """
        data = source.read_bytes(asset.source_ref)

        writer = destination.open_write(asset.target_name)
        try:
            writer.write(data)
        except Exception:
            writer.abort()
            raise
        writer.close()

        self.logger.debug(f"コピー成功: {asset.original_name} -> {asset.target_name} ({len(data):,}bytes)")
