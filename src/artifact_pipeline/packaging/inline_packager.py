"""
Inline packaging for small Azure Functions.

Small handlers can skip the ZIP package entirely and travel inside the ARM
template as base64. The template property limit is 4096 bytes of encoded
code (CONSTANTS.INLINE_CODE_MAX_SIZE).

Usage:
    from artifact_pipeline.packaging.inline_packager import InlinePackager

    packager = InlinePackager()
    result = packager.package(code)
    if result.fits_inline:
        ...  # embed result.encoded_code in the template
    else:
        ...  # fall back to PackageBuilder
"""

import base64
import math
from dataclasses import dataclass
from typing import Optional

from artifact_pipeline import constants as CONSTANTS
from artifact_pipeline.core.exceptions import InlinePackageTooLargeError
from artifact_pipeline.packaging.minify import strip_code

_HANDLER_SIGNATURES = {
    "http": "context, req",
    "timer": "context, timer",
}


@dataclass(frozen=True)
class InlinePackageResult:
    """
    Attributes:
        encoded_code: base64 of the UTF-8 code
        size: Length of encoded_code in bytes
        fits_inline: size <= max_size
        original_size: UTF-8 size of the code before encoding
    """

    encoded_code: str
    size: int
    fits_inline: bool
    original_size: int


class InlinePackager:
    """Encodes function code for inline deployment in ARM templates."""

    def __init__(self, max_size: int = CONSTANTS.INLINE_CODE_MAX_SIZE):
        self.max_size = max_size

    def package(self, code: str) -> InlinePackageResult:
        raw = code.encode("utf-8")
        encoded = base64.b64encode(raw).decode("ascii")
        return InlinePackageResult(
            encoded_code=encoded,
            size=len(encoded),
            fits_inline=len(encoded) <= self.max_size,
            original_size=len(raw),
        )

    def unpackage(self, encoded_code: str) -> str:
        return base64.b64decode(encoded_code).decode("utf-8")

    def can_package_inline(self, code: str) -> bool:
        return self.get_encoded_size(code) <= self.max_size

    def get_encoded_size(self, code: str) -> int:
        """Encoded size without encoding: ceil(n / 3) * 4."""
        return math.ceil(len(code.encode("utf-8")) / 3) * 4

    def minify(self, code: str) -> str:
        """Lossy comment and whitespace stripping, see packaging.minify."""
        return strip_code(code)

    def wrap_handler(self, code: str, handler_type: str = "http") -> str:
        """
        Wrap handler logic in a module.exports async function.

        Args:
            code: Handler body
            handler_type: "http" or "timer"
        """
        signature = _HANDLER_SIGNATURES.get(handler_type)
        if signature is None:
            raise ValueError(f"Unsupported handler type '{handler_type}'. Expected one of: http, timer")
        return f"module.exports = async function ({signature}) {{\n  {code}\n}};"


def package_inline(code: str, minify: bool = False, wrap: Optional[str] = None) -> str:
    """
    Wrap, minify and encode code in one step.

    Returns:
        The base64 encoded code

    Raises:
        InlinePackageTooLargeError: If the encoded code exceeds the inline limit
    """
    packager = InlinePackager()

    processed = code
    if wrap:
        processed = packager.wrap_handler(processed, wrap)
    if minify:
        processed = packager.minify(processed)

    result = packager.package(processed)
    if not result.fits_inline:
        raise InlinePackageTooLargeError(result.size, packager.max_size)
    return result.encoded_code


def can_package_inline(code: str) -> bool:
    return InlinePackager().can_package_inline(code)


def estimate_encoded_size(code: str) -> int:
    return InlinePackager().get_encoded_size(code)


def decode_inline_package(encoded_code: str) -> str:
    return InlinePackager().unpackage(encoded_code)
