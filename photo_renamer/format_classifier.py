"""
フォーマット判定

エントリのContent-Typeとファイル名から、対応画像かどうか、RAWかどうかを判定します。
"""

from typing import Optional, Set, Tuple

from .models import FormatClass


class FormatClassifier:
    """画像フォーマットを判定するクラス"""

    # 標準画像のContent-Type
    STANDARD_TYPES: Set[str] = {
        'image/jpeg',
        'image/png',
        'image/gif',
        'image/webp',
        'image/bmp',
        'image/tiff',
        'image/heic',
        'image/heif',
        'image/avif',
    }

    # RAW画像のContent-Type
    RAW_TYPES: Set[str] = {
        'image/x-canon-cr2',
        'image/x-canon-cr3',
        'image/x-canon-crw',
        'image/x-nikon-nef',
        'image/x-nikon-nrw',
        'image/x-sony-arw',
        'image/x-sony-sr2',
        'image/x-sony-srf',
        'image/x-fuji-raf',
        'image/x-olympus-orf',
        'image/x-panasonic-rw2',
        'image/x-panasonic-raw',
        'image/x-pentax-pef',
        'image/x-adobe-dng',
        'image/x-leica-rwl',
        'image/x-hasselblad-3fr',
        'image/x-phaseone-iiq',
        'image/x-samsung-srw',
        'image/x-sigma-x3f',
        'image/x-dcraw',
    }

    # RAWファイル拡張子（小文字、ドットなし）
    RAW_EXTENSIONS: Set[str] = {
        'cr2', 'cr3', 'crw',   # Canon
        'nef', 'nrw',          # Nikon
        'arw', 'sr2', 'srf',   # Sony
        'raf',                 # Fujifilm
        'orf',                 # Olympus
        'rw2',                 # Panasonic
        'pef',                 # Pentax
        'dng',                 # Adobe/Leica
        'rwl',                 # Leica
        '3fr',                 # Hasselblad
        'iiq',                 # Phase One
        'srw',                 # Samsung
        'x3f',                 # Sigma
    }

    # Content-Typeが無い場合に使う標準画像の拡張子
    STANDARD_EXTENSIONS: Set[str] = {
        'jpg', 'jpeg', 'png', 'gif', 'webp', 'bmp', 'tif', 'tiff', 'heic', 'heif', 'avif',
    }

    # 具体的な形式を示さないContent-Type
    GENERIC_TYPES: Set[str] = {
        'application/octet-stream',
        'binary/octet-stream',
    }

    def classify(self, content_type: Optional[str], filename: str) -> Tuple[bool, bool]:
        """
        対応画像かどうか、RAWかどうかを判定

        Args:
            content_type: エントリが申告するContent-Type（無い場合はNoneまたは空文字列）
            filename: ファイル名

        Returns:
            (対応画像の場合True, RAWの場合True) のタプル
        """
        normalized_type = self._normalize_type(content_type)
        extension = self.get_extension(filename)

        type_is_raw = normalized_type in self.RAW_TYPES
        type_is_standard = normalized_type in self.STANDARD_TYPES
        type_recognized = type_is_raw or type_is_standard

        extension_is_raw = extension in self.RAW_EXTENSIONS

        is_raw = type_is_raw or extension_is_raw

        # Content-Typeが無い、または認識できない場合のみ標準拡張子で補う
        extension_is_standard = (not type_recognized) and extension in self.STANDARD_EXTENSIONS

        is_supported = is_raw or type_is_standard or extension_is_standard
        return is_supported, is_raw

    def format_class(self, content_type: Optional[str], filename: str) -> FormatClass:
        """判定結果をFormatClassとして返す"""
        is_supported, is_raw = self.classify(content_type, filename)
        if is_raw:
            return FormatClass.RAW
        if is_supported:
            return FormatClass.STANDARD
        return FormatClass.UNSUPPORTED

    @staticmethod
    def get_extension(filename: str) -> str:
        """
        ファイル名から小文字の拡張子（ドットなし）を取得

        Args:
            filename: ファイル名

        Returns:
            拡張子（無い場合は空文字列）
        """
        stem, dot, ext = filename.rpartition('.')
        if not dot or not stem:
            return ''
        return ext.lower()

    def _normalize_type(self, content_type: Optional[str]) -> str:
        if not content_type:
            return ''
        # "image/jpeg; charset=binary" のようなパラメータを除去
        normalized = content_type.split(';', 1)[0].strip().lower()
        if normalized in self.GENERIC_TYPES:
            return ''
        return normalized
