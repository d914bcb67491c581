"""
カスタム例外クラス定義

CSV Photo Renamerで使用する例外クラスを定義します。
"""


class ProcessingError(Exception):
    """処理エラーの基底クラス"""
    pass


class ValidationError(ProcessingError):
    """検証エラー（エクスポートの前提条件を満たさない場合など）"""
    pass


class FileOperationError(ProcessingError):
    """ファイル操作エラー"""
    pass


class ExifReadError(ProcessingError):
    """Exif読取エラー"""
    pass


class EnvironmentUnsupportedError(ProcessingError):
    """必要なストレージ機能が利用できない環境"""
    pass


class SelectionError(ProcessingError):
    """フォルダやファイルの選択が行われなかった、または無効"""
    pass
