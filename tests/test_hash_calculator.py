"""
測試哈希計算器
"""

import hashlib
import pytest
from io import BytesIO
from core.hash_calculator import HashCalculator


class TestHashCalculator:
    """測試 HashCalculator"""

    def test_calculate_from_bytes(self):
        """測試從 bytes 計算哈希"""
        data = b"Hello, World!"
        hash1 = HashCalculator.calculate(data)
        hash2 = HashCalculator.calculate(data)

        assert hash1 == hash2
        assert len(hash1) == 40  # SHA-1 為 40 位十六進位
        assert hash1 == hashlib.sha1(data).hexdigest()

    def test_calculate_from_bytesio(self):
        """測試從 BytesIO 計算哈希"""
        data = b"Test data"
        assert HashCalculator.calculate(BytesIO(data)) == HashCalculator.calculate(data)

    def test_text_and_utf8_bytes_hash_identically(self):
        """文字與其 UTF-8 位元組得到相同指紋"""
        text = "# 標題\n\nCafé ☕\n"
        from_text = HashCalculator.calculate_text(text)

        assert from_text == HashCalculator.calculate(text.encode('utf-8'))
        assert from_text == HashCalculator.calculate(text)

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            HashCalculator.calculate(12345)

    def test_different_data_different_hash(self):
        """測試不同數據產生不同哈希"""
        assert HashCalculator.calculate(b"Data 1") != HashCalculator.calculate(b"Data 2")

    @pytest.mark.parametrize("ext", [
        "md", "mdx", "txt", "json", "yaml", "yml", "css",
        "js", "ts", "html", "xml", "csv", "tsv",
    ])
    def test_plain_text_extensions(self, ext):
        assert HashCalculator.is_plain_text_extension(ext) is True

    def test_plain_text_extension_case_and_dot(self):
        assert HashCalculator.is_plain_text_extension(".MD") is True
        assert HashCalculator.is_plain_text_extension("Json") is True

    @pytest.mark.parametrize("ext", ["png", "jpg", "pdf", "excalidraw", ""])
    def test_binary_extensions(self, ext):
        assert HashCalculator.is_plain_text_extension(ext) is False


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
