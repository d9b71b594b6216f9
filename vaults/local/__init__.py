"""
本地資料夾 Vault
"""

from .vault import LocalVault
from .markdown import parse_frontmatter, extract_embeds, split_link

__all__ = [
    'LocalVault',
    'parse_frontmatter',
    'extract_embeds',
    'split_link',
]
