"""
哈希計算器
以 SHA-1 計算檔案內容指紋，用於判斷本地與遠端是否一致（非安全用途）
"""

import hashlib
from typing import Union
from io import BytesIO


# 以文字讀取的副檔名；只影響內容取得方式，不影響哈希演算法
PLAIN_TEXT_EXTENSIONS = frozenset({
    'md', 'mdx', 'txt', 'json', 'yaml', 'yml', 'css',
    'js', 'ts', 'html', 'xml', 'csv', 'tsv',
})


class HashCalculator:
    """檔案哈希計算器"""

    @staticmethod
    def calculate(file_source: Union[str, bytes, bytearray, BytesIO]) -> str:
        """
        計算內容的 SHA-1 哈希值

        Args:
            file_source: 可以是：
                - 文字（str，以 UTF-8 編碼後計算）
                - 二進位數據（bytes / bytearray）
                - BytesIO 物件

        Returns:
            40 位十六進位 SHA-1 哈希字串

        Raises:
            TypeError: 不支援的類型

        Example:
            # 文字與其 UTF-8 位元組得到相同結果
            HashCalculator.calculate('# Title') == HashCalculator.calculate(b'# Title')
        """
        if isinstance(file_source, str):
            data = file_source.encode('utf-8')
        elif isinstance(file_source, (bytes, bytearray)):
            data = bytes(file_source)
        elif isinstance(file_source, BytesIO):
            data = file_source.getvalue()
        else:
            raise TypeError(
                f"不支援的類型: {type(file_source)}，"
                f"僅支援 str, bytes, BytesIO"
            )

        return hashlib.sha1(data).hexdigest()

    @staticmethod
    def calculate_text(text: str) -> str:
        """文字內容的哈希（以 UTF-8 位元組計算）"""
        return HashCalculator.calculate(text.encode('utf-8'))

    @staticmethod
    def is_plain_text_extension(extension: str) -> bool:
        """副檔名是否歸類為純文字（不分大小寫，可帶開頭的點）"""
        return extension.lstrip('.').lower() in PLAIN_TEXT_EXTENSIONS

