"""
画像取り込みモジュール

ソースフォルダのエントリを列挙して対応画像を判定し、画像ごとに撮影日時の抽出と
プレビュー生成を並行して行い、撮影日時順に並べたAssetのリストを作成します。
"""

import logging
from concurrent.futures import Executor, ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional, Tuple

from .config import DEFAULT_CONFIG, PipelineConfig
from .exceptions import FileOperationError
from .exif_reader import ExifReader
from .format_classifier import FormatClassifier
from .metadata_extractor import MetadataExtractor
from .models import Asset, FormatClass, IngestionSummary, StorageEntry
from .storage import StorageHandle
from .thumbnail import ThumbnailSynthesizer


class AssetIngestor:
    """ソースフォルダから画像を取り込むクラス"""

    def __init__(self, classifier: Optional[FormatClassifier] = None,
                 metadata_extractor: Optional[MetadataExtractor] = None,
                 thumbnail_synthesizer: Optional[ThumbnailSynthesizer] = None,
                 config: Optional[PipelineConfig] = None):
        """
        AssetIngestorを初期化

        Args:
            classifier: フォーマット判定クラス（Noneの場合は新規作成）
            metadata_extractor: 撮影日時抽出クラス（Noneの場合は新規作成）
            thumbnail_synthesizer: プレビュー生成クラス（Noneの場合は新規作成）
            config: パイプライン設定
        """
        self.config = config or DEFAULT_CONFIG
        self.classifier = classifier or FormatClassifier()
        self.metadata_extractor = metadata_extractor or MetadataExtractor(
            ExifReader(timeout=self.config.exiftool_timeout))
        self.thumbnail_synthesizer = thumbnail_synthesizer or ThumbnailSynthesizer(self.config)
        self.logger = logging.getLogger(__name__)

    def ingest(self, source: StorageHandle, progress_logger=None,
               on_enumerated: Optional[Callable[[int], None]] = None) -> Tuple[List[Asset], IngestionSummary]:
        """
        ソースフォルダの画像を取り込む

        Args:
            source: ソースフォルダのハンドル
            progress_logger: 進捗表示用のロガー
            on_enumerated: エントリ列挙後にエントリ数を受け取る関数

        Returns:
            撮影日時順のAssetリストと取り込みサマリー

        Raises:
            FileOperationError: ソースフォルダを列挙できない場合
        """
        try:
            entries = source.entries()
        except FileOperationError:
            raise
        except Exception as e:
            raise FileOperationError(f"フォルダを列挙できません: {source.name} - {e}") from e

        if on_enumerated:
            on_enumerated(len(entries))
        if progress_logger:
            progress_logger.log_ingest_start(source.name, len(entries))

        candidates = []
        for index, entry in enumerate(entries):
            if not entry.is_file or not entry.readable:
                continue
            format_class = self.classifier.format_class(entry.content_type, entry.name)
            if format_class == FormatClass.UNSUPPORTED:
                continue
            candidates.append((index, entry, format_class))

        self.logger.info(f"対応画像を発見: {len(candidates)}/{len(entries)}個")

        loaded = self._process_parallel(source, candidates, progress_logger)

        # 同じ撮影日時の場合は列挙順を維持
        loaded.sort(key=lambda item: (item[1].capture_time, item[0]))
        assets = [asset for _, asset in loaded]

        raw_count = sum(1 for asset in assets if asset.is_raw)
        summary = IngestionSummary(
            entries_found=len(entries),
            assets_loaded=len(assets),
            raw_count=raw_count,
            skipped=len(entries) - len(assets),
        )
        return assets, summary

    def _process_parallel(self, source: StorageHandle, candidates, progress_logger=None) -> List[Tuple[int, Asset]]:
        """
        画像を並列処理してAssetを作成

        Returns:
            (列挙順, Asset) のリスト（完了順）
        """
        loaded = []
        if not candidates:
            return loaded

        max_workers = max(1, self.config.max_workers)
        with ThreadPoolExecutor(max_workers=max_workers) as executor, \
                ThreadPoolExecutor(max_workers=max_workers * 2) as detail_executor:
            future_to_candidate = {
                executor.submit(self._ingest_entry, source, entry, format_class, detail_executor):
                (index, entry) for index, entry, format_class in candidates
            }

            for processed, future in enumerate(as_completed(future_to_candidate), start=1):
                index, entry = future_to_candidate[future]
                try:
                    asset = future.result()
                    if asset:
                        loaded.append((index, asset))
                except Exception as e:
                    self.logger.warning(f"画像の取り込みに失敗しました（スキップ）: {entry.name} - {e}")

                if progress_logger and progress_logger.config.verbose:
                    progress_logger.log_ingest_progress(len(candidates), processed, entry.name)

        return loaded

    def _ingest_entry(self, source: StorageHandle, entry: StorageEntry,
                      format_class: FormatClass, detail_executor: Executor) -> Optional[Asset]:
        """
        単一エントリを処理してAssetを作成

        撮影日時の抽出とプレビュー生成は並行して実行し、両方の完了を待ちます。

        Returns:
            作成されたAsset（読み取りに失敗した場合はNone）
        """
        try:
            data = source.read_bytes(entry.name)
        except Exception as e:
            self.logger.warning(f"ファイルを読み取れません（スキップ）: {entry.name} - {e}")
            return None

        is_raw = format_class == FormatClass.RAW
        metadata_future = detail_executor.submit(
            self.metadata_extractor.extract, data, entry.last_modified, entry.name)
        thumbnail_future = detail_executor.submit(
            self.thumbnail_synthesizer.synthesize, data, entry.name, is_raw)

        capture = metadata_future.result()
        thumbnail = thumbnail_future.result()

        self.logger.debug(
            f"取り込み完了: {entry.name} (撮影日時: {capture.capture_time}, 取得元: {capture.source})")
        return Asset(
            source_ref=entry.name,
            original_name=entry.name,
            capture_time=capture.capture_time,
            format_class=format_class,
            thumbnail=thumbnail.data,
        )
