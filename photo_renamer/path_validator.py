"""
パス検証ユーティリティ

ローカルフォルダをストレージハンドルとして開く前の検証を提供します。
"""

import os
from pathlib import Path

from .exceptions import FileOperationError, SelectionError


class PathValidator:
    """パス検証を行うユーティリティクラス"""

    @staticmethod
    def validate_directory(path: Path) -> None:
        """
        ディレクトリの存在とアクセス権を検証

        Args:
            path: 検証するディレクトリパス

        Raises:
            SelectionError: ディレクトリが存在しない、アクセス不可能、
                           またはディレクトリではない場合
        """
        if not path.exists():
            raise SelectionError(f"ディレクトリが存在しません: {path}")

        if not path.is_dir():
            raise SelectionError(f"指定されたパスはディレクトリではありません: {path}")

        if not os.access(path, os.R_OK):
            raise SelectionError(f"ディレクトリに読み取り権限がありません: {path}")

    @staticmethod
    def validate_writable_directory(path: Path) -> None:
        """
        書き込み可能なディレクトリかどうかを検証

        Raises:
            SelectionError: ディレクトリが無効、または書き込み権限がない場合
        """
        PathValidator.validate_directory(path)

        if not os.access(path, os.W_OK):
            raise SelectionError(f"ディレクトリに書き込み権限がありません: {path}")

    @staticmethod
    def normalize_path(path_str: str) -> Path:
        """
        パス文字列を正規化してPathオブジェクトに変換
        macOSとWindowsの両方のパス形式をサポート
        """
        return Path(path_str).expanduser().resolve()

    @staticmethod
    def validate_entry_name(name: str) -> None:
        """
        フォルダ直下のエントリ名として使えるかを検証

        データセットのセル値をそのままファイル名に使うため、
        区切り文字や親ディレクトリ参照を含む名前は拒否します。

        Raises:
            FileOperationError: エントリ名として不正な場合
        """
        if not name or name in ('.', '..'):
            raise FileOperationError(f"不正なファイル名です: '{name}'")

        if '/' in name or '\\' in name or '\x00' in name:
            raise FileOperationError(f"ファイル名に区切り文字が含まれています: '{name}'")
