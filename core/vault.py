"""
Vault 介面
發佈引擎只透過此介面讀取宿主的檔案與 metadata，不直接碰檔案系統
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class VaultFile:
    """Vault 內單一檔案（路徑為 vault 相對路徑，以 / 分隔）"""

    def __init__(self, path: str, size: int = 0):
        self.path = path.replace('\\', '/')
        self.size = size

    @property
    def name(self) -> str:
        return self.path.rsplit('/', 1)[-1]

    @property
    def extension(self) -> str:
        name = self.name
        if '.' not in name:
            return ''
        return name.rsplit('.', 1)[-1].lower()

    @property
    def basename(self) -> str:
        """不含副檔名的檔名"""
        name = self.name
        if '.' not in name:
            return name
        return name.rsplit('.', 1)[0]

    def __eq__(self, other):
        if not isinstance(other, VaultFile):
            return NotImplemented
        return self.path == other.path

    def __hash__(self):
        return hash(self.path)

    def __repr__(self):
        return f"VaultFile({self.path!r})"


class BaseVault(ABC):
    """宿主提供的唯讀能力（正式環境與測試各自實作）"""

    @abstractmethod
    def list_files(self) -> List[VaultFile]:
        """列出 vault 內所有檔案"""

    @abstractmethod
    def get_file(self, path: str) -> Optional[VaultFile]:
        """依 vault 相對路徑取得檔案，不存在回傳 None"""

    @abstractmethod
    def read_text(self, file: VaultFile) -> str:
        """以文字讀取"""

    @abstractmethod
    def read_binary(self, file: VaultFile) -> bytes:
        """以原始位元組讀取"""

    @abstractmethod
    def resolve_link(self, link: str, source_path: str) -> Optional[VaultFile]:
        """
        解析 wiki 連結

        Args:
            link: 連結目標（不含 [[ ]]，可能帶 #heading 或 |alias）
            source_path: 連結所在檔案的路徑

        Returns:
            目標檔案，找不到回傳 None
        """

    @abstractmethod
    def get_frontmatter(self, file: VaultFile) -> Optional[Dict[str, Any]]:
        """解析後的 front-matter，沒有則回傳 None"""

    @abstractmethod
    def get_embeds(self, file: VaultFile) -> List[str]:
        """檔案內的嵌入連結目標（![[...]] 與 ![](...)）"""
