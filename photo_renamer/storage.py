"""
ストレージハンドル

フォルダ相当の機能（エントリ列挙、読み取り、作成・書き込み）を抽象化します。
パイプラインはこのインターフェースだけを通してファイルにアクセスするため、
ローカルフォルダの代わりにメモリ上のハンドルを差し込むことができます。
"""

import io
import mimetypes
import os
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional

from .exceptions import FileOperationError
from .models import StorageEntry
from .path_validator import PathValidator


class EntryWriter(ABC):
    """書き込み用エントリ（closeで確定、abortで破棄）"""

    @abstractmethod
    def write(self, data: bytes) -> int:
        """バイト列を書き込む"""

    @abstractmethod
    def close(self) -> None:
        """書き込んだ内容を確定する"""

    @abstractmethod
    def abort(self) -> None:
        """書き込んだ内容を破棄する（出力先にエントリを残さない）"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if exc_type is None:
            self.close()
        else:
            self.abort()


class StorageHandle(ABC):
    """フォルダ相当のストレージハンドル"""

    name: str = ''

    @abstractmethod
    def entries(self) -> List[StorageEntry]:
        """
        エントリを列挙

        Raises:
            FileOperationError: 列挙できない場合（権限エラーなど）
        """

    @abstractmethod
    def open_read(self, name: str) -> BinaryIO:
        """指定エントリを読み取り用に開く"""

    @abstractmethod
    def open_write(self, name: str) -> EntryWriter:
        """
        指定エントリを書き込み用に開く

        closeで確定し（存在しなければ作成、存在すれば置き換え）、
        abortで書き込み途中の内容を破棄します。
        """

    def read_bytes(self, name: str) -> bytes:
        """指定エントリの全バイトを読み取る"""
        with self.open_read(name) as reader:
            return reader.read()


class LocalDirectoryHandle(StorageHandle):
    """ローカルフォルダのストレージハンドル"""

    def __init__(self, path: Path, writable: bool = False):
        """
        LocalDirectoryHandleを初期化

        Args:
            path: フォルダのパス
            writable: 書き込み権限も検証する場合True

        Raises:
            SelectionError: フォルダが無効な場合
        """
        self.path = Path(path)
        if writable:
            PathValidator.validate_writable_directory(self.path)
        else:
            PathValidator.validate_directory(self.path)
        self.name = str(self.path)

    @classmethod
    def create(cls, path: Path) -> 'LocalDirectoryHandle':
        """フォルダが存在しなければ作成してから書き込み用ハンドルを返す"""
        path = Path(path)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileOperationError(f"出力先フォルダの作成に失敗しました: {path} - {e}") from e
        return cls(path, writable=True)

    def entries(self) -> List[StorageEntry]:
        try:
            children = sorted(self.path.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise FileOperationError(f"フォルダを列挙できません: {self.path} - {e}") from e

        result = []
        for child in children:
            try:
                stat_info = child.stat()
            except OSError:
                # 壊れたシンボリックリンクなど
                result.append(StorageEntry(name=child.name, kind='file', readable=False))
                continue

            is_file = child.is_file()
            content_type, _ = mimetypes.guess_type(child.name) if is_file else (None, None)
            result.append(StorageEntry(
                name=child.name,
                kind='file' if is_file else 'directory',
                readable=os.access(child, os.R_OK),
                content_type=content_type,
                size=stat_info.st_size,
                last_modified=datetime.fromtimestamp(stat_info.st_mtime),
            ))
        return result

    def open_read(self, name: str) -> BinaryIO:
        PathValidator.validate_entry_name(name)
        return open(self.path / name, 'rb')

    def open_write(self, name: str) -> EntryWriter:
        PathValidator.validate_entry_name(name)
        return _LocalWriter(self.path / name)


class _LocalWriter(EntryWriter):
    """一時ファイルに書き込み、close時に目的の名前へ置き換えるライター"""

    def __init__(self, target: Path):
        self._target = target
        self._partial = target.with_name(f".{target.name}.partial")
        try:
            self._file = open(self._partial, 'wb')
        except OSError as e:
            raise FileOperationError(f"出力ファイルを作成できません: {target} - {e}") from e

    def write(self, data: bytes) -> int:
        return self._file.write(data)

    def close(self) -> None:
        if self._file.closed:
            return
        try:
            self._file.close()
            os.replace(self._partial, self._target)
        except OSError:
            self._remove_partial()
            raise

    def abort(self) -> None:
        if not self._file.closed:
            self._file.close()
        self._remove_partial()

    def _remove_partial(self) -> None:
        try:
            self._partial.unlink()
        except FileNotFoundError:
            pass


class _MemoryWriter(EntryWriter):
    """close時に内容をハンドルへ確定するライター"""

    def __init__(self, handle: 'MemoryDirectoryHandle', name: str):
        self._buffer = io.BytesIO()
        self._handle = handle
        self._name = name

    def write(self, data: bytes) -> int:
        return self._buffer.write(data)

    def close(self) -> None:
        if not self._buffer.closed:
            self._handle._commit(self._name, self._buffer.getvalue())
            self._buffer.close()

    def abort(self) -> None:
        self._buffer.close()


class MemoryDirectoryHandle(StorageHandle):
    """メモリ上のストレージハンドル（ドライラン出力先やテストに使用）"""

    def __init__(self, name: str = 'memory'):
        self.name = name
        self.files: Dict[str, bytes] = {}
        self._content_types: Dict[str, Optional[str]] = {}
        self._modified: Dict[str, datetime] = {}
        self._unreadable = set()
        self._directories: List[str] = []

    def add_file(self, name: str, data: bytes, content_type: Optional[str] = None,
                 last_modified: Optional[datetime] = None, readable: bool = True) -> None:
        """ファイルを追加"""
        self.files[name] = data
        self._content_types[name] = content_type
        self._modified[name] = last_modified or datetime.now()
        if not readable:
            self._unreadable.add(name)

    def add_directory(self, name: str) -> None:
        """サブフォルダを追加（列挙のみ）"""
        self._directories.append(name)

    def entries(self) -> List[StorageEntry]:
        result = [StorageEntry(name=name, kind='directory') for name in self._directories]
        for name, data in self.files.items():
            result.append(StorageEntry(
                name=name,
                kind='file',
                readable=name not in self._unreadable,
                content_type=self._content_types.get(name),
                size=len(data),
                last_modified=self._modified.get(name),
            ))
        return result

    def open_read(self, name: str) -> BinaryIO:
        if name not in self.files or name in self._unreadable:
            raise FileOperationError(f"ファイルを読み取れません: {name}")
        return io.BytesIO(self.files[name])

    def open_write(self, name: str) -> EntryWriter:
        PathValidator.validate_entry_name(name)
        return _MemoryWriter(self, name)

    def _commit(self, name: str, data: bytes) -> None:
        self.files[name] = data
        self._content_types.setdefault(name, None)
        self._modified[name] = datetime.now()
