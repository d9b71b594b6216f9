"""
Markdown 解析
front-matter（YAML）與嵌入連結（![[...]]、![](...)）
"""

import re
from typing import Any, Dict, List, Optional
from urllib.parse import unquote

import yaml


_FRONTMATTER_RE = re.compile(r'\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)', re.DOTALL)
_WIKI_EMBED_RE = re.compile(r'!\[\[([^\]\n]+)\]\]')
_MD_EMBED_RE = re.compile(r'!\[[^\]\n]*\]\(\s*(?:<([^>\n]+)>|([^)\s]+))(?:\s+"[^"]*")?\s*\)')
_CODE_FENCE_RE = re.compile(r'^(```|~~~).*?^\1', re.DOTALL | re.MULTILINE)


def parse_frontmatter(text: str) -> Optional[Dict[str, Any]]:
    """
    解析開頭的 YAML front-matter

    Returns:
        mapping；沒有 front-matter 或 YAML 無效時回傳 None
    """
    match = _FRONTMATTER_RE.match(text.lstrip('\ufeff'))
    if not match:
        return None
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError:
        return None
    return data if isinstance(data, dict) else None


def split_link(link: str) -> str:
    """去掉 |別名 與 #標題 / #^區塊，只留目標路徑"""
    target = link.split('|', 1)[0]
    target = target.split('#', 1)[0]
    return target.strip()


def extract_embeds(text: str) -> List[str]:
    """
    擷取內文中的嵌入目標（先 wiki 嵌入再 markdown 圖片，可能重複）

    程式碼區塊內的語法不算；外部網址（含 scheme）略過。
    """
    body = _FRONTMATTER_RE.sub('', text.lstrip('\ufeff'), count=1)
    body = _CODE_FENCE_RE.sub('', body)

    embeds = []
    for match in _WIKI_EMBED_RE.finditer(body):
        target = split_link(match.group(1))
        if target:
            embeds.append(target)

    for match in _MD_EMBED_RE.finditer(body):
        raw = (match.group(1) or match.group(2)).strip()
        if re.match(r'^[a-zA-Z][a-zA-Z0-9+.-]*:', raw):
            continue
        target = split_link(unquote(raw))
        if target:
            embeds.append(target)

    return embeds
