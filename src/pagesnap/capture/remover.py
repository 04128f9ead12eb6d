import re

_SCRIPT_BLOCK_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>\s*", re.IGNORECASE)
_EMPTY_LINES_RE = re.compile(r"\n\s*\n\s*\n+")


def remove_scripts(content: str) -> str:
    return _SCRIPT_BLOCK_RE.sub("", content)


def remove_empty_lines(content: str) -> str:
    return _EMPTY_LINES_RE.sub("\n\n", content)
