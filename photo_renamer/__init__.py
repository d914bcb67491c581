# CSV Photo Renamer
# A Python tool to name photos after CSV rows in capture-time order and copy them

from .models import (
    Asset, FormatClass, StorageEntry, TabularDataset, IngestionSummary,
    CaptureTimeResult, ThumbnailResult, ExportOutcome
)
from .exceptions import (
    ProcessingError, ValidationError, FileOperationError, ExifReadError,
    EnvironmentUnsupportedError, SelectionError
)
from .config import PipelineConfig
from .storage import StorageHandle, EntryWriter, LocalDirectoryHandle, MemoryDirectoryHandle
from .format_classifier import FormatClassifier
from .exif_reader import ExifReader
from .metadata_extractor import MetadataExtractor
from .thumbnail import ThumbnailSynthesizer, compute_bounded_size
from .ingestion import AssetIngestor
from .dataset_loader import load_dataset
from .name_projection import NameProjector
from .exporter import BatchExporter
from .logger import ProgressLogger, LogConfig, create_default_logger, get_default_log_file
from .pipeline import RenamePipeline

__all__ = [
    'Asset',
    'FormatClass',
    'StorageEntry',
    'TabularDataset',
    'IngestionSummary',
    'CaptureTimeResult',
    'ThumbnailResult',
    'ExportOutcome',
    'ProcessingError',
    'ValidationError',
    'FileOperationError',
    'ExifReadError',
    'EnvironmentUnsupportedError',
    'SelectionError',
    'PipelineConfig',
    'StorageHandle',
    'EntryWriter',
    'LocalDirectoryHandle',
    'MemoryDirectoryHandle',
    'FormatClassifier',
    'ExifReader',
    'MetadataExtractor',
    'ThumbnailSynthesizer',
    'compute_bounded_size',
    'AssetIngestor',
    'load_dataset',
    'NameProjector',
    'BatchExporter',
    'ProgressLogger',
    'LogConfig',
    'create_default_logger',
    'get_default_log_file',
    'RenamePipeline'
]
