"""
路徑規則
vault 路徑正規化、根目錄範圍判斷、排除規則（正則）與 `publish: false` 標記
"""

import re
from typing import List, Optional, Pattern

from utils import SyncLogger, LogIcons
from utils.config_loader import DEFAULT_EXCLUDE_PATTERNS
from .vault import BaseVault, VaultFile


# 只有這些副檔名會讀 front-matter
_FRONTMATTER_EXTENSIONS = ('md', 'mdx')


def _strip_slashes(value: str) -> str:
    return value.strip('/')


class PathPolicy:
    """
    發佈範圍規則

    靜態方法為純函數；實例會在建構時預先編譯排除規則，
    之後每個檔案的判斷結果與逐次編譯完全相同（無效規則一律略過）。
    """

    def __init__(
        self,
        root_dir: str = "",
        exclude_patterns: Optional[List[str]] = None,
        logger: Optional[SyncLogger] = None
    ):
        self.root_dir = _strip_slashes(root_dir or "")
        self.exclude_patterns = list(exclude_patterns or [])
        self.logger = logger
        self._compiled: List[Pattern] = []

        for pattern in self.exclude_patterns:
            compiled = self._compile(pattern, logger)
            if compiled is not None:
                self._compiled.append(compiled)

    # ── 純函數 ────────────────────────────────────────────────

    @staticmethod
    def normalize(path: str, root_dir: str = "") -> str:
        """
        去掉開頭斜線並剝除 root_dir 前綴

        不在 root_dir 底下的路徑原樣（去斜線後）回傳，
        呼叫端需要另外用 is_within_root 判斷。
        """
        normalized = path.lstrip('/')
        root = _strip_slashes(root_dir or "")

        if root:
            if normalized.startswith(root + '/'):
                # blog//a.md 剝除後仍不可留下開頭斜線
                normalized = normalized[len(root) + 1:].lstrip('/')
            elif normalized == root:
                normalized = ""

        return normalized

    @staticmethod
    def is_within_root(path: str, root_dir: str = "") -> bool:
        """路徑是否位於 root_dir 內（整段目錄比對，blog 不會命中 blog-archive）"""
        if not root_dir:
            return True

        root = _strip_slashes(root_dir)
        if not root:
            return True

        normalized = path.lstrip('/')
        return normalized == root or normalized.startswith(root + '/')

    @staticmethod
    def is_excluded(
        path: str,
        patterns: List[str],
        logger: Optional[SyncLogger] = None
    ) -> bool:
        """任一排除規則命中即為 True；無法編譯的規則視為不命中"""
        for pattern in patterns or []:
            compiled = PathPolicy._compile(pattern, logger)
            if compiled is not None and compiled.search(path):
                return True
        return False

    @staticmethod
    def has_publish_false(file: VaultFile, vault: BaseVault) -> bool:
        """md / mdx 的 front-matter 是否明確寫了 publish: false"""
        if file.extension not in _FRONTMATTER_EXTENSIONS:
            return False
        frontmatter = vault.get_frontmatter(file)
        return bool(frontmatter) and frontmatter.get('publish') is False

    @staticmethod
    def _compile(pattern: str, logger: Optional[SyncLogger]) -> Optional[Pattern]:
        try:
            return re.compile(pattern)
        except (re.error, TypeError) as e:
            if logger:
                logger.warning(LogIcons.WARNING, f"無效的排除規則，已略過: {pattern!r} ({e})")
            return None

    # ── 已編譯的規則 ──────────────────────────────────────────

    def excludes(self, path: str) -> bool:
        return any(p.search(path) for p in self._compiled)

    def contains(self, path: str) -> bool:
        return self.is_within_root(path, self.root_dir)

    def to_remote_path(self, path: str) -> str:
        return self.normalize(path, self.root_dir)

    def to_vault_path(self, remote_path: str) -> str:
        """遠端路徑（已剝除 root_dir）還原為 vault 路徑"""
        remote_path = remote_path.lstrip('/')
        if not self.root_dir:
            return remote_path
        return f"{self.root_dir}/{remote_path}"

    def should_skip(self, file: VaultFile, vault: BaseVault) -> bool:
        """
        是否不發佈此檔案

        依序檢查：不在根目錄內 → 命中排除規則 → publish: false，
        前者成立就不再讀 front-matter。
        """
        return (
            not self.contains(file.path)
            or self.excludes(file.path)
            or self.has_publish_false(file, vault)
        )
