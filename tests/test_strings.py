"""Tests for text helpers (buildsystem/utils/strings.py)."""

import pytest

from buildsystem.utils.strings import normalize_line_endings, remove_code_block_fences


class TestRemoveCodeBlockFences:

    @pytest.mark.parametrize(
        "text",
        [
            "```markdown\n## Home\nBody.\n```",
            "```\n## Home\nBody.\n```",
            "```md\n## Home\nBody.\n```\n",
            "  ```markdown\n## Home\nBody.\n```  ",
        ],
    )
    def test_enclosing_pair_removed(self, text):
        assert remove_code_block_fences(text) == "## Home\nBody."

    def test_lone_opening_fence_removed(self):
        assert remove_code_block_fences("```markdown\n## Home\nBody.") == "## Home\nBody."

    def test_lone_closing_fence_removed(self):
        assert remove_code_block_fences("## Home\nBody.\n```") == "## Home\nBody."

    def test_plain_text_only_trimmed(self):
        assert remove_code_block_fences("\n  ## Home\nBody.  \n") == "## Home\nBody."

    def test_inner_fenced_block_kept(self):
        text = "## Home\n```\nGET /home\n```\nMore."

        assert remove_code_block_fences(text) == text

    def test_inner_block_at_end_kept(self):
        text = "## Home\nExample:\n```json\n{}\n```"

        assert remove_code_block_fences(text) == text

    def test_wrapper_around_inner_block(self):
        inner = "## Home\n```http\nGET /home\n```\nMore."

        assert remove_code_block_fences(f"```markdown\n{inner}\n```") == inner

    def test_separate_blocks_at_both_ends_kept(self):
        text = "```js\nconst a = 1;\n```\n\nPage text\n\n```py\nx = 2\n```"

        assert remove_code_block_fences(text) == text

    def test_separate_bare_blocks_at_both_ends_kept(self):
        text = "```\nGET /home\n```\nPage text\n```\nGET /about\n```"

        assert remove_code_block_fences(text) == text

    def test_only_fences(self):
        assert remove_code_block_fences("```\n```") == ""

    def test_empty(self):
        assert remove_code_block_fences("") == ""


class TestNormalizeLineEndings:

    def test_crlf_converted(self):
        assert normalize_line_endings("a\r\nb\r\n") == "a\nb\n"

    def test_lf_untouched(self):
        assert normalize_line_endings("a\nb") == "a\nb"
