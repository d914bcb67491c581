"""
パイプライン管理モジュール

ソースフォルダの取り込み、データセットの読み込み、列の選択、エクスポートの各操作と、
呼び出し側（CLIやUI）に見せる状態（ステータス文字列、処理中フラグ、プレビュー一覧）を管理します。
データセットや列が変わるたびにファイル名の割り当てを明示的に再計算します。
"""

import threading
import time
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from .dataset_loader import load_dataset
from .exceptions import EnvironmentUnsupportedError, ProcessingError, SelectionError, ValidationError
from .exporter import BatchExporter
from .ingestion import AssetIngestor
from .logger import ProgressLogger, create_default_logger
from .models import Asset, ExportOutcome, IngestionSummary, TabularDataset
from .name_projection import NameProjector
from .storage import StorageHandle


DestinationProvider = Callable[[], StorageHandle]


class RenamePipeline:
    """取り込みからエクスポートまでの状態を保持するクラス"""

    def __init__(self, ingestor: Optional[AssetIngestor] = None,
                 projector: Optional[NameProjector] = None,
                 exporter: Optional[BatchExporter] = None,
                 destination_provider: Optional[DestinationProvider] = None,
                 progress_logger: Optional[ProgressLogger] = None):
        """
        RenamePipelineを初期化

        Args:
            ingestor: 画像取り込みクラス（Noneの場合は新規作成）
            projector: ファイル名割り当てクラス（Noneの場合は新規作成）
            exporter: エクスポートクラス（Noneの場合は新規作成）
            destination_provider: 出力先が未選択のときに出力先ハンドルを取得する関数
            progress_logger: 進捗表示用のロガー
        """
        self.ingestor = ingestor or AssetIngestor()
        self.projector = projector or NameProjector()
        self.exporter = exporter or BatchExporter()
        self.destination_provider = destination_provider
        self.progress_logger = progress_logger or create_default_logger()

        self.status: str = ''
        self.is_processing: bool = False
        self.assets: List[Asset] = []
        self.summary: Optional[IngestionSummary] = None
        self.dataset: Optional[TabularDataset] = None
        self.column: Optional[str] = None
        self.source: Optional[StorageHandle] = None
        self.destination: Optional[StorageHandle] = None

    def _set_status(self, message: str) -> None:
        self.status = message
        self.progress_logger.log_info(message)

    def _fail(self, error: Exception) -> None:
        self.status = f"エラー: {error}"
        self.progress_logger.log_error(self.source.name if self.source else '-', str(error))

    def select_source(self, source: Optional[StorageHandle]) -> IngestionSummary:
        """
        ソースフォルダを選択して画像を取り込む

        失敗した場合は以前の状態（画像リストとソース）を保持します。

        Args:
            source: ソースフォルダのハンドル

        Returns:
            取り込みサマリー

        Raises:
            SelectionError: ハンドルが無い場合
            FileOperationError: フォルダを列挙できない場合
        """
        self._set_status("フォルダを選択しています...")
        if source is None:
            error = SelectionError("フォルダが選択されませんでした")
            self._fail(error)
            raise error

        self.is_processing = True
        try:
            start_time = time.time()
            assets, summary = self.ingestor.ingest(
                source, self.progress_logger,
                on_enumerated=lambda count: self._set_status(f"{count}個のエントリを読み込んでいます..."))
            self.progress_logger.log_ingest_complete(summary, time.time() - start_time)
        except ProcessingError as e:
            self._fail(e)
            raise
        finally:
            self.is_processing = False

        self.source = source
        self.assets = assets
        self.summary = summary
        self._set_status(
            f"{summary.assets_loaded}枚の画像を読み込みました（RAW {summary.raw_count}枚）。撮影日時順に並べ替えました")
        self.recompute_names()
        return summary

    def load_dataset(self, source: Union[Path, str, bytes, TabularDataset]) -> TabularDataset:
        """
        データセットを読み込んでファイル名を再計算

        Args:
            source: CSVのパスまたはバイト列、読み込み済みのデータセット

        Returns:
            読み込まれたデータセット
        """
        try:
            dataset = source if isinstance(source, TabularDataset) else load_dataset(source)
        except ProcessingError as e:
            self._fail(e)
            raise

        self.dataset = dataset
        if self.column is not None and self.column not in dataset.fields:
            self.column = None
        self.progress_logger.log_dataset_loaded(len(dataset), dataset.fields)
        self._set_status(f"データセットから{len(dataset)}件のレコードを読み込みました")
        self.recompute_names()
        return dataset

    def select_column(self, column: Optional[str]) -> None:
        """
        ファイル名に使う列を選択してファイル名を再計算

        Raises:
            ValidationError: データセットに無い列を指定した場合
        """
        if column is not None and (self.dataset is None or column not in self.dataset.fields):
            error = ValidationError(f"列がデータセットにありません: {column}")
            self._fail(error)
            raise error
        self.column = column
        self.recompute_names()

    def recompute_names(self) -> int:
        """現在の画像リスト、データセット、列から出力ファイル名を再計算"""
        named = self.projector.project(self.assets, self.dataset, self.column)
        if self.assets:
            self.progress_logger.log_projection_complete(named, len(self.assets), self.column)
        return named

    def set_destination(self, destination: StorageHandle) -> None:
        """出力先フォルダを設定"""
        self.destination = destination

    def _check_export_preconditions(self) -> None:
        if self.source is None:
            raise ValidationError("ソースフォルダが選択されていません")
        if self.dataset is None:
            raise ValidationError("データセットが読み込まれていません")
        if self.dataset.is_empty:
            raise ValidationError("データセットにレコードがありません")
        if not self.assets:
            raise ValidationError("画像がありません")
        if not self.column:
            raise ValidationError("ファイル名に使う列が選択されていません")

    def _ensure_destination(self) -> StorageHandle:
        if self.destination is not None:
            return self.destination
        if self.destination_provider is None:
            raise EnvironmentUnsupportedError("出力先フォルダを選択する機能がありません")
        destination = self.destination_provider()
        if destination is None:
            raise SelectionError("出力先フォルダが選択されませんでした")
        self.destination = destination
        return destination

    def export(self, cancel_event: Optional[threading.Event] = None) -> ExportOutcome:
        """
        出力ファイル名で画像をコピー

        Args:
            cancel_event: セットされると次の画像の前で処理を中断する

        Returns:
            エクスポート結果

        Raises:
            ValidationError: 前提条件を満たさない場合（I/Oは行わない）
            EnvironmentUnsupportedError: 出力先を取得する手段が無い場合
            SelectionError: 出力先が選択されなかった場合
        """
        try:
            self._check_export_preconditions()
            destination = self._ensure_destination()
        except ProcessingError as e:
            self._fail(e)
            raise

        self.is_processing = True
        self._set_status("エクスポートを開始しています...")
        self.progress_logger.log_export_start(len(self.assets))
        try:
            start_time = time.time()
            outcome = self.exporter.export(
                self.assets, self.source, destination, self.progress_logger, cancel_event)
            self.progress_logger.log_export_complete(outcome, time.time() - start_time)
        finally:
            self.is_processing = False

        message = f"{outcome.succeeded}枚の画像をコピーしました。エラー{outcome.failed}件"
        if outcome.cancelled:
            message += "（キャンセルされました）"
        self._set_status(message)
        return outcome

    def preview(self) -> List[Tuple[str, Optional[str], Optional[bytes]]]:
        """
        表示用の一覧を取得

        Returns:
            (元のファイル名, 出力ファイル名, プレビューJPEG) のリスト（撮影日時順）
        """
        return [(asset.original_name, asset.target_name, asset.thumbnail) for asset in self.assets]
