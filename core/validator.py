"""
設定與 front-matter 驗證
"""

from typing import Any, Dict, Optional

from .errors import PolicyError, ValidationError


TOKEN_PREFIX = "fs_pat_"


def validate_settings(token: Optional[str], site_name: Optional[str]) -> None:
    """
    檢查連線所需設定

    Raises:
        ValidationError: 缺少 token / 站點名稱，或 token 格式不符
    """
    if not token:
        raise ValidationError("設定錯誤：尚未設定 Flowershow PAT token")
    if not site_name:
        raise ValidationError("設定錯誤：尚未設定站點名稱（site_name）")
    if not token.startswith(TOKEN_PREFIX):
        raise ValidationError(f"設定錯誤：token 格式無效，必須以 '{TOKEN_PREFIX}' 開頭")


def validate_publish_frontmatter(frontmatter: Optional[Dict[str, Any]], path: str = "") -> None:
    """front-matter 明確標記 publish: false 時拋出 PolicyError"""
    if frontmatter and frontmatter.get('publish') is False:
        raise PolicyError(f"筆記標記為不發佈（publish: false）: {path}", path=path)
