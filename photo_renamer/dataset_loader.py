"""
データセット読み込みモジュール

CSVファイルを読み込み、ヘッダー行から列名を取得した行レコードのシーケンスを作成します。
"""

import csv
import io
import logging
from pathlib import Path
from typing import Union

from .exceptions import FileOperationError, ValidationError
from .models import TabularDataset


logger = logging.getLogger(__name__)


def load_dataset(source: Union[Path, str, bytes]) -> TabularDataset:
    """
    CSVを読み込んでTabularDatasetを作成

    空行はスキップし、値の無いセルは空文字列として扱います。

    Args:
        source: CSVファイルのパス、またはCSVのバイト列

    Returns:
        読み込まれたデータセット

    Raises:
        FileOperationError: ファイルを読み取れない場合
        ValidationError: ヘッダー行が無い場合
    """
    if isinstance(source, bytes):
        raw = source
    else:
        path = Path(source)
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise FileOperationError(f"CSVファイルを読み取れません: {path} - {e}") from e

    # Excelが付与するBOMを除去
    text = raw.decode('utf-8-sig', errors='replace')
    reader = csv.DictReader(io.StringIO(text), restval='')

    if not reader.fieldnames:
        raise ValidationError("CSVにヘッダー行がありません")

    fields = tuple(name.strip() for name in reader.fieldnames)
    rows = []
    for record in reader:
        values = [record.get(original, '') for original in reader.fieldnames]
        if all(not (value or '').strip() for value in values):
            continue
        rows.append({field: (value or '') for field, value in zip(fields, values)})

    logger.debug(f"CSV読み込み: {len(rows)}行, 列={list(fields)}")
    return TabularDataset(fields=fields, rows=tuple(rows))
