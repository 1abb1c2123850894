"""Text helpers shared by handlers."""

import re

_FENCE_LINE = re.compile(r"^[ \t]*```(?P<info>[^\n`]*)$", re.MULTILINE)
_OPENING_FENCE = re.compile(r"\A[ \t]*```[\w+-]*[ \t]*(?:\n|\Z)")
_CLOSING_FENCE = re.compile(r"(?:\A|\n)[ \t]*```[ \t]*\Z")


def normalize_line_endings(text: str) -> str:
    """Convert CRLF line endings to LF."""
    return text.replace("\r\n", "\n")


def _first_fence_closed_by_last(text: str) -> bool:
    """
    Pair fence lines in order and report whether the first one's partner is
    the last one.

    A fence with an info string (```js) always opens a block. A bare fence
    closes the innermost open block, or opens one when none is open.
    """
    fences = list(_FENCE_LINE.finditer(text))
    open_blocks = []
    for index, fence in enumerate(fences):
        if fence.group("info").strip() or not open_blocks:
            open_blocks.append(index)
        elif open_blocks.pop() == 0:
            return index == len(fences) - 1
    return False


def remove_code_block_fences(text: str) -> str:
    """
    Strip the code-fence wrapper a model put around its whole answer.

    The outer fences are removed only when they close each other, so two
    separate blocks at the start and end of the text are left alone. A lone
    opening or closing fence is removed when it has no partner.

    Example:
        >>> remove_code_block_fences("```markdown\\n## Home\\n```")
        '## Home'
    """
    stripped = text.strip()
    opening = _OPENING_FENCE.search(stripped)
    closing = _CLOSING_FENCE.search(stripped)
    unbalanced = len(_FENCE_LINE.findall(stripped)) % 2 == 1

    if (
        opening
        and closing
        # The opening match may have consumed the newline the closing match starts on
        and opening.end() <= closing.start() + 1
        and _first_fence_closed_by_last(stripped)
    ):
        stripped = stripped[opening.end():closing.start()]
    elif opening and unbalanced:
        stripped = stripped[opening.end():]
    elif closing and unbalanced:
        stripped = stripped[:closing.start()]

    return stripped.strip()
