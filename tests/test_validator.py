"""
測試設定與 front-matter 驗證
"""

import pytest

from core.errors import PolicyError, ValidationError
from core.validator import validate_publish_frontmatter, validate_settings


class TestValidateSettings:

    def test_valid(self):
        validate_settings("fs_pat_123", "garden")

    @pytest.mark.parametrize("token, site_name, keyword", [
        (None, "garden", "token"),
        ("", "garden", "token"),
        ("fs_pat_123", "", "site_name"),
        ("ghp_123", "garden", "fs_pat_"),
    ])
    def test_invalid(self, token, site_name, keyword):
        with pytest.raises(ValidationError, match=keyword):
            validate_settings(token, site_name)


class TestValidatePublishFrontmatter:

    @pytest.mark.parametrize("frontmatter", [
        None,
        {},
        {'publish': True},
        {'publish': 'false'},
        {'title': 'x'},
    ])
    def test_allowed(self, frontmatter):
        validate_publish_frontmatter(frontmatter, "a.md")

    def test_publish_false(self):
        with pytest.raises(PolicyError) as exc:
            validate_publish_frontmatter({'publish': False}, "drafts/a.md")
        assert exc.value.path == "drafts/a.md"
