"""
測試 LocalVault 與 markdown 解析

1) 列舉檔案時略過宿主設定資料夾與隱藏檔
2) front-matter / 嵌入連結解析
3) wiki 連結解析順序（完整路徑 → 相對路徑 → 檔名最近者）
"""

import pytest

from vaults.local import LocalVault, extract_embeds, parse_frontmatter, split_link


@pytest.fixture
def vault_dir(tmp_path):
    files = {
        "index.md": "---\ntitle: Home\nimage: '[[cover.png]]'\n---\n# Home\n![[cover.png]]\n",
        "blog/post.md": "# Post\n![[diagram]]\n![alt](images/photo%201.jpg)\n",
        "blog/diagram.md": "# Diagram",
        "blog/images/photo 1.jpg": "jpg",
        "assets/cover.png": "png",
        "archive/deep/cover.png": "old png",
        ".obsidian/app.json": "{}",
        ".hidden.md": "secret",
    }
    for rel, content in files.items():
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding='utf-8')
    return tmp_path


@pytest.fixture
def vault(vault_dir):
    return LocalVault(str(vault_dir))


class TestLocalVault:

    def test_missing_root(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            LocalVault(str(tmp_path / "nope"))

    def test_list_files_skips_hidden(self, vault):
        paths = [f.path for f in vault.list_files()]
        assert paths == [
            "index.md",
            "archive/deep/cover.png",
            "assets/cover.png",
            "blog/diagram.md",
            "blog/post.md",
            "blog/images/photo 1.jpg",
        ]

    def test_get_file_rejects_parent_segments(self, vault):
        assert vault.get_file("../etc/passwd") is None
        assert vault.get_file("missing.md") is None
        assert vault.get_file("blog/post.md").extension == "md"

    def test_read_text_and_binary(self, vault):
        file = vault.get_file("assets/cover.png")
        assert vault.read_binary(file) == b"png"
        assert vault.read_text(vault.get_file("blog/diagram.md")) == "# Diagram"

    def test_frontmatter_only_for_markdown(self, vault):
        assert vault.get_frontmatter(vault.get_file("index.md"))['title'] == 'Home'
        assert vault.get_frontmatter(vault.get_file("blog/post.md")) is None
        assert vault.get_frontmatter(vault.get_file("assets/cover.png")) is None

    def test_embeds(self, vault):
        assert vault.get_embeds(vault.get_file("blog/post.md")) == ["diagram", "images/photo 1.jpg"]
        assert vault.get_embeds(vault.get_file("assets/cover.png")) == []

    def test_read_text_tolerates_invalid_utf8(self, vault_dir):
        (vault_dir / "legacy.md").write_bytes(b"---\ntitle: caf\xe9\n---\ncaf\xe9")
        vault = LocalVault(str(vault_dir))
        file = vault.get_file("legacy.md")

        assert vault.read_text(file).endswith("caf\ufffd")
        assert vault.get_frontmatter(file) == {'title': 'caf\ufffd'}


class TestResolveLink:

    def test_full_path(self, vault):
        assert vault.resolve_link("assets/cover.png", "index.md").path == "assets/cover.png"

    def test_relative_to_source(self, vault):
        assert vault.resolve_link("images/photo 1.jpg", "blog/post.md").path == "blog/images/photo 1.jpg"

    def test_adds_md_extension(self, vault):
        assert vault.resolve_link("diagram", "blog/post.md").path == "blog/diagram.md"

    def test_basename_prefers_shorter_path(self, vault):
        assert vault.resolve_link("cover.png", "index.md").path == "assets/cover.png"

    def test_basename_prefers_closer_directory(self, vault):
        found = vault.resolve_link("cover.png", "archive/deep/note.md")
        assert found.path == "archive/deep/cover.png"

    def test_strips_alias_and_heading(self, vault):
        assert vault.resolve_link("diagram#Section|Alias", "blog/post.md").path == "blog/diagram.md"

    def test_unresolved(self, vault):
        assert vault.resolve_link("nothing.png", "index.md") is None


class TestMarkdown:

    def test_parse_frontmatter(self):
        assert parse_frontmatter("---\npublish: false\n---\nbody") == {'publish': False}
        assert parse_frontmatter("\ufeff---\na: 1\n---\n") == {'a': 1}
        assert parse_frontmatter("no frontmatter") is None
        assert parse_frontmatter("---\n: [bad\n---\n") is None
        assert parse_frontmatter("---\n- a\n---\n") is None

    def test_split_link(self):
        assert split_link("note#heading|alias") == "note"
        assert split_link(" img.png ") == "img.png"

    def test_extract_embeds_skips_code_and_urls(self):
        text = (
            "---\nimage: x\n---\n"
            "![[a.png|300]]\n"
            "```\n![[in-code.png]]\n```\n"
            "![remote](https://example.com/x.png)\n"
            "![local](b.png \"title\")\n"
        )
        assert extract_embeds(text) == ["a.png", "b.png"]

    def test_extract_embeds_angle_brackets_with_spaces(self):
        text = "![](<my image.png>)\n![cover](< assets/cover 1.png > \"Cover\")\n"
        assert extract_embeds(text) == ["my image.png", "assets/cover 1.png"]


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
