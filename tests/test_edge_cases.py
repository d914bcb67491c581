"""
エッジケースのユニットテスト

CSV Photo Renamerの各コンポーネントのエッジケースをテストします。
ローカルフォルダのハンドル、エントリ名の検証、読み取れない画像の扱いなどを対象とします。
"""

import os
import shutil
import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

from photo_renamer.exceptions import FileOperationError, SelectionError
from photo_renamer.exif_reader import ExifReader
from photo_renamer.exporter import BatchExporter
from photo_renamer.metadata_extractor import MetadataExtractor
from photo_renamer.models import Asset, FormatClass, TabularDataset
from photo_renamer.path_validator import PathValidator
from photo_renamer.storage import LocalDirectoryHandle, MemoryDirectoryHandle, _LocalWriter
from photo_renamer.thumbnail import ThumbnailSynthesizer, compute_bounded_size


class TestLocalDirectoryHandleEdgeCases(unittest.TestCase):
    """LocalDirectoryHandleのエッジケーステスト"""

    def setUp(self):
        """テスト前の準備"""
        self.temp_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        """テスト後のクリーンアップ"""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_entries_include_directories_and_metadata(self):
        """サブフォルダもエントリとして列挙され、ファイルには種類と更新日時が付く"""
        (self.temp_dir / "sub").mkdir()
        photo = self.temp_dir / "photo.jpg"
        photo.write_bytes(b"jpeg data")
        os.utime(photo, (1600000000, 1600000000))

        entries = {entry.name: entry for entry in LocalDirectoryHandle(self.temp_dir).entries()}

        self.assertEqual(entries["sub"].kind, 'directory')
        self.assertFalse(entries["sub"].is_file)
        self.assertEqual(entries["photo.jpg"].content_type, 'image/jpeg')
        self.assertEqual(entries["photo.jpg"].size, len(b"jpeg data"))
        self.assertEqual(entries["photo.jpg"].last_modified, datetime.fromtimestamp(1600000000))

    def test_entries_are_sorted_by_name(self):
        """エントリは名前順に列挙される"""
        for name in ["c.jpg", "a.jpg", "b.jpg"]:
            (self.temp_dir / name).write_bytes(b"x")

        names = [entry.name for entry in LocalDirectoryHandle(self.temp_dir).entries()]

        self.assertEqual(names, ["a.jpg", "b.jpg", "c.jpg"])

    def test_nonexistent_directory(self):
        """存在しないフォルダはSelectionError"""
        with self.assertRaises(SelectionError):
            LocalDirectoryHandle(self.temp_dir / "missing")

    def test_file_instead_of_directory(self):
        """ファイルを指定した場合はSelectionError"""
        file_path = self.temp_dir / "file.txt"
        file_path.write_text("not a directory")

        with self.assertRaises(SelectionError):
            LocalDirectoryHandle(file_path)

    def test_create_makes_missing_directory(self):
        """出力先フォルダが無い場合は作成する"""
        destination = self.temp_dir / "out" / "nested"

        handle = LocalDirectoryHandle.create(destination)

        self.assertTrue(destination.is_dir())
        self.assertEqual(handle.path, destination)

    def test_create_fails_when_path_is_file(self):
        """同名のファイルがある場合は作成に失敗する"""
        blocker = self.temp_dir / "blocker"
        blocker.write_text("file")

        with self.assertRaises((FileOperationError, SelectionError)):
            LocalDirectoryHandle.create(blocker)

    def test_write_then_read(self):
        """書き込んだ内容を読み取れる"""
        handle = LocalDirectoryHandle(self.temp_dir, writable=True)

        with handle.open_write("out.jpg") as writer:
            writer.write(b"\xff\xd8\xff\xe0data")

        self.assertEqual(handle.read_bytes("out.jpg"), b"\xff\xd8\xff\xe0data")

    def test_write_truncates_existing_file(self):
        """既存ファイルへの書き込みは内容を置き換える"""
        (self.temp_dir / "out.jpg").write_bytes(b"a much longer previous content")
        handle = LocalDirectoryHandle(self.temp_dir, writable=True)

        with handle.open_write("out.jpg") as writer:
            writer.write(b"short")

        self.assertEqual((self.temp_dir / "out.jpg").read_bytes(), b"short")

    def test_write_outside_directory_is_rejected(self):
        """フォルダの外を指す名前は拒否される"""
        handle = LocalDirectoryHandle(self.temp_dir, writable=True)

        with self.assertRaises(FileOperationError):
            handle.open_write("../escape.jpg")
        self.assertFalse((self.temp_dir.parent / "escape.jpg").exists())

    def test_abort_leaves_no_entry(self):
        """abortした書き込みは出力ファイルも一時ファイルも残さない"""
        handle = LocalDirectoryHandle(self.temp_dir, writable=True)

        writer = handle.open_write("out.jpg")
        writer.write(b"012")
        writer.abort()

        self.assertEqual(list(self.temp_dir.iterdir()), [])

    def test_abort_keeps_existing_file(self):
        """abortした書き込みは既存ファイルを変更しない"""
        (self.temp_dir / "out.jpg").write_bytes(b"previous")
        handle = LocalDirectoryHandle(self.temp_dir, writable=True)

        with self.assertRaises(OSError):
            with handle.open_write("out.jpg") as writer:
                writer.write(b"012")
                raise OSError("disk full")

        self.assertEqual((self.temp_dir / "out.jpg").read_bytes(), b"previous")
        self.assertEqual([p.name for p in self.temp_dir.iterdir()], ["out.jpg"])

    def test_export_write_failure_leaves_destination_empty(self):
        """書き込み途中で失敗したエクスポートは出力先にファイルを残さない"""
        source = MemoryDirectoryHandle()
        source.add_file("IMG_0001.jpg", b"0123456789")
        asset = Asset(source_ref="IMG_0001.jpg", original_name="IMG_0001.jpg",
                      capture_time=datetime(2023, 1, 1), format_class=FormatClass.STANDARD,
                      target_name="Alpha.jpg")
        destination = LocalDirectoryHandle(self.temp_dir, writable=True)

        with patch.object(_LocalWriter, 'write', side_effect=OSError("disk full")):
            outcome = BatchExporter().export([asset], source, destination)

        self.assertEqual(outcome.failed, 1)
        self.assertIn("disk full", outcome.errors[0][1])
        self.assertEqual(list(self.temp_dir.iterdir()), [])


class TestEntryNameValidation(unittest.TestCase):
    """エントリ名検証のエッジケーステスト"""

    def test_invalid_names(self):
        """空、カレント・親ディレクトリ、区切り文字を含む名前は不正"""
        for name in ["", ".", "..", "a/b.jpg", "a\\b.jpg", "nul\x00.jpg"]:
            with self.subTest(name=name):
                with self.assertRaises(FileOperationError):
                    PathValidator.validate_entry_name(name)

    def test_valid_names(self):
        """通常のファイル名や日本語のファイル名は有効"""
        for name in ["photo.jpg", "山田 太郎.jpg", ".hidden.jpg", "a..b.jpg"]:
            with self.subTest(name=name):
                PathValidator.validate_entry_name(name)


class TestMemoryDirectoryHandleEdgeCases(unittest.TestCase):
    """MemoryDirectoryHandleのエッジケーステスト"""

    def test_unreadable_file(self):
        """読み取り不可のファイルはFileOperationError"""
        handle = MemoryDirectoryHandle()
        handle.add_file("locked.jpg", b"data", readable=False)

        entry = handle.entries()[0]
        self.assertFalse(entry.readable)
        with self.assertRaises(FileOperationError):
            handle.read_bytes("locked.jpg")

    def test_write_is_committed_on_close(self):
        """書き込みはclose時に確定する"""
        handle = MemoryDirectoryHandle()
        writer = handle.open_write("out.jpg")
        writer.write(b"data")

        self.assertNotIn("out.jpg", handle.files)
        writer.close()
        self.assertEqual(handle.files["out.jpg"], b"data")

    def test_abort_is_not_committed(self):
        """abortした書き込みはハンドルに確定されない"""
        handle = MemoryDirectoryHandle()
        writer = handle.open_write("out.jpg")
        writer.write(b"012")
        writer.abort()
        writer.close()

        self.assertEqual(handle.files, {})


class TestMetadataEdgeCases(unittest.TestCase):
    """撮影日時抽出のエッジケーステスト"""

    def test_zero_byte_file_uses_last_modified(self):
        """0バイトのファイルは更新日時を使う"""
        last_modified = datetime(2020, 2, 3, 4, 5, 6)
        extractor = MetadataExtractor(exif_reader=ExifReader())

        result = extractor.extract(b"", last_modified, "zero.jpg")

        self.assertEqual(result.capture_time, last_modified)
        self.assertTrue(result.used_fallback)

    def test_corrupted_data_uses_last_modified(self):
        """画像として読めないデータは更新日時を使う"""
        last_modified = datetime(2020, 2, 3, 4, 5, 6)
        with patch.object(ExifReader, '_find_exiftool', return_value=None):
            extractor = MetadataExtractor(exif_reader=ExifReader())

        result = extractor.extract(b"\xff\xe1\x00\x16Exif\x00\x00corrupted_data", last_modified, "bad.jpg")

        self.assertEqual(result.capture_time, last_modified)

    def test_exif_datetime_with_nul_padding(self):
        """末尾にNULが付いた日時文字列も解析できる"""
        parsed = ExifReader(exiftool_path=Path('/usr/bin/exiftool'))._parse_exif_datetime(
            '2020:01:02 03:04:05\x00')

        self.assertEqual(parsed, datetime(2020, 1, 2, 3, 4, 5))


class TestThumbnailEdgeCases(unittest.TestCase):
    """プレビュー生成のエッジケーステスト"""

    def test_placeholder_with_non_ascii_name(self):
        """日本語のファイル名でもプレースホルダーを生成できる"""
        result = ThumbnailSynthesizer().placeholder("山田_0001.CR2")

        self.assertTrue(result.is_placeholder)
        self.assertTrue(result.data.startswith(b"\xff\xd8"))

    def test_invalid_dimensions(self):
        """0以下のサイズはValueError"""
        with self.assertRaises(ValueError):
            compute_bounded_size(0, 100, 400)
        with self.assertRaises(ValueError):
            compute_bounded_size(100, -1, 400)

    def test_one_pixel_wide_image(self):
        """極端に細長い画像でも辺の長さは1以上"""
        self.assertEqual(compute_bounded_size(1, 10000, 400), (1, 400))
        self.assertEqual(compute_bounded_size(10000, 1, 400), (400, 1))


class TestExportEdgeCases(unittest.TestCase):
    """ローカルフォルダへのエクスポートのエッジケーステスト"""

    def setUp(self):
        """テスト前の準備"""
        self.temp_dir = Path(tempfile.mkdtemp())
        self.source_dir = self.temp_dir / "source"
        self.destination_dir = self.temp_dir / "destination"
        self.source_dir.mkdir()
        self.destination_dir.mkdir()

    def tearDown(self):
        """テスト後のクリーンアップ"""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _asset(self, name, target_name):
        return Asset(
            source_ref=name,
            original_name=name,
            capture_time=datetime(2020, 1, 1),
            format_class=FormatClass.STANDARD,
            target_name=target_name,
        )

    def test_copy_between_local_directories(self):
        """ローカルフォルダ間でバイト列がそのままコピーされる"""
        (self.source_dir / "IMG_0001.JPG").write_bytes(b"\xff\xd8original")
        assets = [self._asset("IMG_0001.JPG", "山田.jpg")]

        outcome = BatchExporter().export(
            assets, LocalDirectoryHandle(self.source_dir), LocalDirectoryHandle(self.destination_dir, writable=True))

        self.assertEqual(outcome.succeeded, 1)
        self.assertEqual((self.destination_dir / "山田.jpg").read_bytes(), b"\xff\xd8original")
        self.assertTrue((self.source_dir / "IMG_0001.JPG").exists())

    def test_source_deleted_after_ingest(self):
        """取り込み後にソースが削除された画像は失敗として数え、空のファイルを残さない"""
        (self.source_dir / "keep.jpg").write_bytes(b"keep")
        assets = [self._asset("gone.jpg", "first.jpg"), self._asset("keep.jpg", "second.jpg")]

        outcome = BatchExporter().export(
            assets, LocalDirectoryHandle(self.source_dir), LocalDirectoryHandle(self.destination_dir, writable=True))

        self.assertEqual(outcome.succeeded, 1)
        self.assertEqual(outcome.failed, 1)
        self.assertFalse((self.destination_dir / "first.jpg").exists())
        self.assertEqual((self.destination_dir / "second.jpg").read_bytes(), b"keep")


class TestDatasetEdgeCases(unittest.TestCase):
    """データセットのエッジケーステスト"""

    def test_row_out_of_range(self):
        """範囲外の行はNone"""
        dataset = TabularDataset(fields=('name',), rows=({'name': 'a'},))

        self.assertIsNone(dataset.row(1))
        self.assertIsNone(dataset.row(-1))
        self.assertEqual(dataset.row(0), {'name': 'a'})


if __name__ == '__main__':
    unittest.main()
