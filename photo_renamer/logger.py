"""
ロギングシステム

CSV Photo Renamerのロギング機能を提供します。
標準出力とファイル出力の両方をサポートし、各フェーズの進捗表示とエラーログを管理します。
"""

import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from .models import ExportOutcome, IngestionSummary


@dataclass
class LogConfig:
    """ログ設定"""
    console_level: int = logging.INFO
    file_level: int = logging.DEBUG
    log_file: Optional[Path] = None
    verbose: bool = False


class ProgressLogger:
    """進捗表示とロギングを管理するクラス"""

    def __init__(self, config: LogConfig):
        self.config = config
        self.logger = self._setup_logger()
        self._start_time: Optional[datetime] = None

    def _setup_logger(self) -> logging.Logger:
        """ロガーのセットアップ"""
        logger = logging.getLogger('photo_renamer')
        logger.setLevel(logging.DEBUG)

        # 既存のハンドラーをクリア
        logger.handlers.clear()

        console_formatter = logging.Formatter('%(message)s')
        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self.config.console_level)
        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)

        if self.config.log_file:
            self.config.log_file.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(self.config.log_file, encoding='utf-8')
            file_handler.setLevel(self.config.file_level)
            file_handler.setFormatter(file_formatter)
            logger.addHandler(file_handler)

        return logger

    def log_processing_start(self, source: str, destination: Optional[str] = None):
        """処理開始時のサマリー表示"""
        self._start_time = datetime.now()

        self.logger.info("=" * 60)
        self.logger.info("CSV Photo Renamer - 処理開始")
        self.logger.info("=" * 60)
        self.logger.info(f"開始時刻: {self._start_time.strftime('%Y-%m-%d %H:%M:%S')}")
        self.logger.info(f"ソースフォルダ: {source}")
        if destination:
            self.logger.info(f"出力先フォルダ: {destination}")
        self.logger.info("")

    def log_ingest_start(self, source: str, entries_found: int):
        """画像取り込み開始のログ"""
        self.logger.info(f"画像取り込み開始: {source} ({entries_found}個のエントリ)")

    def log_ingest_progress(self, total: int, processed: int, current_name: Optional[str] = None):
        """画像取り込み時の進捗表示"""
        if self.config.verbose and current_name:
            self.logger.info(f"処理中: {current_name}")

        if total > 0:
            progress = (processed / total) * 100
            self.logger.info(f"取り込み進捗: {processed}/{total} ({progress:.1f}%)")

    def log_ingest_complete(self, summary: IngestionSummary, processing_time: float):
        """画像取り込み完了のログ"""
        self.logger.info(f"画像取り込み完了: {summary.assets_loaded}枚 (RAW: {summary.raw_count}枚)")
        if summary.has_raw:
            self.logger.info("  - RAW画像のプレビューは埋め込みプレビューから生成します")
        if summary.skipped:
            self.logger.info(f"  - 対象外/スキップ: {summary.skipped}個")
        self.logger.info(f"処理時間: {processing_time:.2f}秒")
        self.logger.info("")

    def log_dataset_loaded(self, record_count: int, fields):
        """データセット読み込み完了のログ"""
        self.logger.info(f"データセット読み込み完了: {record_count}件")
        self.logger.info(f"  - 列: {', '.join(fields)}")

    def log_projection_complete(self, named: int, total: int, column: Optional[str]):
        """ファイル名割り当て完了のログ"""
        if column is None:
            self.logger.info("列が選択されていないため、ファイル名をクリアしました")
            return
        self.logger.info(f"ファイル名割り当て完了: {named}/{total}枚 (列: {column})")

    def log_export_start(self, asset_count: int):
        """エクスポート開始のログ"""
        self.logger.info(f"エクスポート開始: {asset_count}枚の画像をコピー予定")

    def log_export_progress(self, total: int, processed: int, current_name: Optional[str] = None):
        """エクスポート時の進捗表示"""
        if self.config.verbose and current_name:
            self.logger.info(f"コピー中: {current_name}")

        if total > 0:
            progress = (processed / total) * 100
            self.logger.info(f"コピー進捗: {processed}/{total} ({progress:.1f}%)")

    def log_export_complete(self, outcome: ExportOutcome, processing_time: float):
        """エクスポート完了のログ"""
        self.logger.info("エクスポート完了:")
        self.logger.info(f"  - 成功: {outcome.succeeded}個")
        self.logger.info(f"  - 失敗: {outcome.failed}個")
        if outcome.cancelled:
            self.logger.info(f"  - 中断: {outcome.last_item} の後でキャンセルされました")
        self.logger.info(f"処理時間: {processing_time:.2f}秒")

        if outcome.errors:
            self.logger.info("")
            self.logger.info(f"エラー詳細 ({len(outcome.errors)}件):")
            for file_name, error_msg in outcome.errors:
                self.logger.error(f"  - {file_name}: {error_msg}")

        self.logger.info("")

    def log_processing_complete(self):
        """処理完了時のサマリー表示"""
        end_time = datetime.now()
        total_time = (end_time - self._start_time).total_seconds() if self._start_time else 0

        self.logger.info("=" * 60)
        self.logger.info(f"終了時刻: {end_time.strftime('%Y-%m-%d %H:%M:%S')}")
        self.logger.info(f"総処理時間: {total_time:.2f}秒")
        self.logger.info("=" * 60)

    def log_error(self, file_name: str, error_message: str, exception: Optional[Exception] = None):
        """エラーログの詳細記録"""
        error_msg = f"エラー - {file_name}: {error_message}"

        if exception:
            error_msg += f" ({type(exception).__name__}: {str(exception)})"

        self.logger.error(error_msg)

        # 詳細なスタックトレースはファイルログのみに記録
        if exception and self.config.log_file:
            self.logger.debug("スタックトレース:", exc_info=exception)

    def log_warning(self, message: str):
        """警告メッセージのログ"""
        self.logger.warning(f"警告: {message}")

    def log_info(self, message: str):
        """情報メッセージのログ"""
        self.logger.info(message)

    def log_debug(self, message: str):
        """デバッグメッセージのログ"""
        self.logger.debug(message)


def create_default_logger(verbose: bool = False, log_file: Optional[Path] = None) -> ProgressLogger:
    """デフォルトのロガーを作成"""
    config = LogConfig(
        console_level=logging.DEBUG if verbose else logging.INFO,
        file_level=logging.DEBUG,
        log_file=log_file,
        verbose=verbose
    )
    return ProgressLogger(config)


def get_default_log_file() -> Path:
    """デフォルトのログファイルパスを取得"""
    log_dir = Path.home() / '.photo_renamer' / 'logs'
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    return log_dir / f'photo_renamer_{timestamp}.log'
