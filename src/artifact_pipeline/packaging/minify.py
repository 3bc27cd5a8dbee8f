"""
Best-effort code stripping.

WARNING: this is a text transform, not a parser-based minifier. It is lossy and
NOT guaranteed to preserve semantics:
    - "//" or "/*" inside string literals, regexes or URLs gets cut
    - collapsing newlines breaks code that relies on automatic semicolon insertion

It is disabled by default in PackageBuilder and only meant to shave bytes off
simple handlers. Use a real minifier (terser, esbuild) for anything else.
"""

import re

_BLOCK_COMMENT = re.compile(r"/\*[\s\S]*?\*/")
_LINE_COMMENT = re.compile(r"//.*$", re.MULTILINE)
_WHITESPACE = re.compile(r"\s+")


def strip_code(code: str) -> str:
    """Remove block and line comments and collapse whitespace (lossy)."""
    stripped = _BLOCK_COMMENT.sub("", code)
    stripped = _LINE_COMMENT.sub("", stripped)
    stripped = _WHITESPACE.sub(" ", stripped)
    return stripped.strip()
