"""
本地資料夾 Vault
以檔案系統實作 BaseVault：列舉檔案、讀取內容、解析 wiki 連結與 front-matter
"""

import os
import posixpath
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.vault import BaseVault, VaultFile
from .markdown import extract_embeds, parse_frontmatter, split_link


# 宿主的設定/版控/垃圾桶資料夾，不屬於內容
IGNORED_DIRS = frozenset({'.obsidian', '.git', '.trash'})

_MARKDOWN_EXTENSIONS = ('md', 'mdx')


class LocalVault(BaseVault):
    """本地資料夾 Vault"""

    def __init__(self, root: str):
        self.root = Path(root).expanduser().resolve()
        if not self.root.is_dir():
            raise FileNotFoundError(f"Vault 資料夾不存在: {root}")

    def _abs(self, path: str) -> Path:
        return self.root / Path(*path.split('/'))

    def list_files(self) -> List[VaultFile]:
        files: List[VaultFile] = []

        for current, dirs, names in os.walk(self.root):
            # 原地修改 dirs 讓 os.walk 跳過隱藏資料夾
            dirs[:] = sorted(
                d for d in dirs
                if d not in IGNORED_DIRS and not d.startswith('.')
            )
            rel_dir = Path(current).relative_to(self.root).as_posix()

            for name in sorted(names):
                if name.startswith('.'):
                    continue
                rel = name if rel_dir == '.' else f"{rel_dir}/{name}"
                try:
                    size = os.path.getsize(os.path.join(current, name))
                except OSError:
                    continue
                files.append(VaultFile(rel, size))

        return files

    def get_file(self, path: str) -> Optional[VaultFile]:
        rel = path.replace('\\', '/').strip('/')
        if not rel or '..' in rel.split('/'):
            return None
        full = self._abs(rel)
        if not full.is_file():
            return None
        return VaultFile(rel, full.stat().st_size)

    def read_text(self, file: VaultFile) -> str:
        """以 UTF-8 讀取；無法解碼的位元組以 U+FFFD 取代，不拋錯"""
        return self._abs(file.path).read_bytes().decode('utf-8', errors='replace')

    def read_binary(self, file: VaultFile) -> bytes:
        return self._abs(file.path).read_bytes()

    def get_frontmatter(self, file: VaultFile) -> Optional[Dict[str, Any]]:
        if file.extension not in _MARKDOWN_EXTENSIONS:
            return None
        return parse_frontmatter(self.read_text(file))

    def get_embeds(self, file: VaultFile) -> List[str]:
        if file.extension not in _MARKDOWN_EXTENSIONS:
            return []
        return extract_embeds(self.read_text(file))

    def resolve_link(self, link: str, source_path: str) -> Optional[VaultFile]:
        """
        解析 wiki 連結（沿用宿主的規則）

        1. 以 vault 根目錄為基準的完整路徑
        2. 以來源檔案所在資料夾為基準的相對路徑
        3. 依檔名比對，多個候選時取與來源資料夾最近者，再取路徑最短者
        沒有副檔名時補上 .md。
        """
        target = split_link(link).replace('\\', '/')
        if not target:
            return None

        candidates = [target]
        if '.' not in target.rsplit('/', 1)[-1]:
            candidates.insert(0, f"{target}.md")

        source_dir = posixpath.dirname(source_path.replace('\\', '/'))

        for candidate in candidates:
            found = self.get_file(candidate.lstrip('/'))
            if found:
                return found

            if source_dir:
                relative = posixpath.normpath(posixpath.join(source_dir, candidate))
                if not relative.startswith('..'):
                    found = self.get_file(relative)
                    if found:
                        return found

        names = {c.rsplit('/', 1)[-1].lower(): c for c in candidates}
        matches = []
        for file in self.list_files():
            candidate = names.get(file.name.lower())
            if candidate is None:
                continue
            if '/' in candidate and not file.path.lower().endswith(candidate.lower()):
                continue
            matches.append(file)

        if not matches:
            return None

        def rank(file: VaultFile):
            shared = os.path.commonprefix([posixpath.dirname(file.path), source_dir])
            return (-len(shared), len(file.path), file.path)

        return sorted(matches, key=rank)[0]
