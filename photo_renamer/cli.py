"""
コマンドラインインターフェース

CSV Photo Renamerのメインエントリーポイントです。
argparseのサブコマンド機能を使用して、columns、preview、exportコマンドを提供します。
"""

import argparse
import sys
from dataclasses import replace

from .config import DEFAULT_CONFIG
from .dataset_loader import load_dataset
from .exceptions import ProcessingError, ValidationError
from .ingestion import AssetIngestor
from .logger import create_default_logger, get_default_log_file
from .path_validator import PathValidator
from .pipeline import RenamePipeline
from .storage import LocalDirectoryHandle, MemoryDirectoryHandle


def create_parser() -> argparse.ArgumentParser:
    """
    コマンドライン引数パーサーを作成

    Returns:
        設定済みのArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog='photo-renamer',
        description='撮影日時順に並べた画像にCSVの値でファイル名を付けてコピーするツール',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
使用例:
  # CSVの列一覧を表示
  photo-renamer columns names.csv

  # 割り当てられるファイル名を確認
  photo-renamer preview /path/to/photos --csv names.csv --column name

  # 出力先フォルダへコピー
  photo-renamer export /path/to/photos /path/to/output --csv names.csv --column name

詳細については各サブコマンドのヘルプを参照してください:
  photo-renamer <command> --help
        """
    )

    subparsers = parser.add_subparsers(
        dest='command',
        help='利用可能なコマンド',
        metavar='<command>'
    )

    # columnsコマンド（エイリアス: c）
    columns_parser = subparsers.add_parser(
        'columns',
        aliases=['c'],
        help='CSVの列一覧を表示',
        description='CSVファイルのヘッダー行から列名と件数を表示します。'
    )
    columns_parser.add_argument(
        'csv',
        type=str,
        help='CSVファイルのパス'
    )

    # previewコマンド（エイリアス: p）
    preview_parser = subparsers.add_parser(
        'preview',
        aliases=['p'],
        help='割り当てられるファイル名を表示',
        description='画像を撮影日時順に並べ、CSVの行と対応付けた結果を表示します。ファイルはコピーしません。'
    )
    _add_source_arguments(preview_parser)

    # exportコマンド（エイリアス: e）
    export_parser = subparsers.add_parser(
        'export',
        aliases=['e'],
        help='画像を新しいファイル名で出力先フォルダへコピー',
        description='画像を撮影日時順に並べ、CSVの値で名前を付けて出力先フォルダへコピーします。',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
使用例:
  # 基本的な使用方法
  photo-renamer export /path/to/photos /path/to/output --csv names.csv --column name

  # 書き込まずに結果だけ確認
  photo-renamer export /path/to/photos /path/to/output --csv names.csv --column name --dry-run
        """
    )
    _add_source_arguments(export_parser)
    export_parser.add_argument(
        'destination',
        type=str,
        help='出力先フォルダのパス（存在しない場合は作成）'
    )
    export_parser.add_argument(
        '--dry-run', '-n',
        action='store_true',
        help='ファイルを書き込まずに結果だけ表示'
    )

    return parser


def _add_source_arguments(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument(
        'source',
        type=str,
        help='画像のソースフォルダのパス'
    )
    subparser.add_argument(
        '--csv',
        type=str,
        required=True,
        help='CSVファイルのパス'
    )
    subparser.add_argument(
        '--column',
        type=str,
        required=True,
        help='ファイル名に使う列名'
    )
    subparser.add_argument(
        '--workers', '-w',
        type=int,
        default=DEFAULT_CONFIG.max_workers,
        help=f'画像取り込みの並列数（デフォルト: {DEFAULT_CONFIG.max_workers}）'
    )
    subparser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='詳細ログを表示'
    )


def _build_pipeline(args, destination_provider=None) -> RenamePipeline:
    log_file = get_default_log_file() if args.verbose else None
    progress_logger = create_default_logger(verbose=args.verbose, log_file=log_file)
    config = replace(DEFAULT_CONFIG, max_workers=max(1, args.workers))
    return RenamePipeline(ingestor=AssetIngestor(config=config),
                          destination_provider=destination_provider,
                          progress_logger=progress_logger)


def _destination_provider(args):
    """出力先ハンドルを取得する関数（前提条件の確認後に呼ばれる）"""
    if args.dry_run:
        return lambda: MemoryDirectoryHandle(name=f"{args.destination} (dry-run)")
    return lambda: LocalDirectoryHandle.create(PathValidator.normalize_path(args.destination))


def _prepare(pipeline: RenamePipeline, args) -> None:
    source = LocalDirectoryHandle(PathValidator.normalize_path(args.source))
    pipeline.progress_logger.log_processing_start(
        source.name, getattr(args, 'destination', None))
    pipeline.select_source(source)
    pipeline.load_dataset(PathValidator.normalize_path(args.csv))
    pipeline.select_column(args.column)


def handle_columns_command(args) -> int:
    """
    columnsコマンドを処理

    Returns:
        終了コード（0: 成功、1: エラー）
    """
    try:
        dataset = load_dataset(PathValidator.normalize_path(args.csv))
        print(f"レコード数: {len(dataset)}")
        print("列:")
        for field in dataset.fields:
            print(f"  - {field}")
        return 0

    except ValidationError as e:
        print(f"❌ 入力エラー: {e}", file=sys.stderr)
        return 1
    except ProcessingError as e:
        print(f"❌ 処理エラー: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"❌ 予期しないエラー: {e}", file=sys.stderr)
        return 1


def handle_preview_command(args) -> int:
    """
    previewコマンドを処理

    Returns:
        終了コード（0: 成功、1: エラー）
    """
    try:
        pipeline = _build_pipeline(args)
        _prepare(pipeline, args)

        for index, (original_name, target_name, _) in enumerate(pipeline.preview(), start=1):
            print(f"{index:4d}. {original_name} -> {target_name or '(名前なし)'}")
        print(pipeline.status)
        return 0

    except ValidationError as e:
        print(f"❌ 入力エラー: {e}", file=sys.stderr)
        return 1
    except ProcessingError as e:
        print(f"❌ 処理エラー: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"❌ 予期しないエラー: {e}", file=sys.stderr)
        return 1


def handle_export_command(args) -> int:
    """
    exportコマンドを処理

    Returns:
        終了コード（0: 成功、1: エラー）
    """
    try:
        pipeline = _build_pipeline(args, _destination_provider(args))
        _prepare(pipeline, args)

        pipeline.export()
        pipeline.progress_logger.log_processing_complete()
        print(pipeline.status)
        return 0

    except ValidationError as e:
        print(f"❌ 入力エラー: {e}", file=sys.stderr)
        return 1
    except ProcessingError as e:
        print(f"❌ 処理エラー: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"❌ 予期しないエラー: {e}", file=sys.stderr)
        return 1


def main(argv=None) -> int:
    """
    メインエントリーポイント

    Returns:
        終了コード（0: 成功、1: エラー）
    """
    parser = create_parser()

    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        parser.print_help()
        return 0

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    if args.command in ['columns', 'c']:
        return handle_columns_command(args)
    elif args.command in ['preview', 'p']:
        return handle_preview_command(args)
    elif args.command in ['export', 'e']:
        return handle_export_command(args)
    else:
        print(f"❌ 不明なコマンド: {args.command}", file=sys.stderr)
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
