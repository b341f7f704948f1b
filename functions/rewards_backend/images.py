"""
Image field normalization.

Goods images and the banner are stored either as inline data URLs
(``data:image/png;base64,...``) or as references to files served by the
active upload sink. Anything else is replaced with a placeholder so a bad
image never blocks a save.
"""

from __future__ import annotations

import base64
import re
from typing import Any, Iterable

DEFAULT_GOODS_IMAGE = "/images/goods/default_goods.png"
DEFAULT_BANNER_IMAGE = "/images/banner.png"

INLINE_IMAGE_PATTERN = re.compile(r"^data:image/[\w.+-]+[;,]")


def is_inline_image(candidate: Any) -> bool:
    return isinstance(candidate, str) and bool(INLINE_IMAGE_PATTERN.match(candidate))


def is_served_reference(candidate: Any, reference_prefixes: Iterable[str]) -> bool:
    if not isinstance(candidate, str) or not candidate:
        return False
    return any(
        prefix and candidate.startswith(prefix) and len(candidate) > len(prefix)
        for prefix in reference_prefixes
    )


def normalize_image(
    candidate: Any,
    placeholder: str = DEFAULT_GOODS_IMAGE,
    reference_prefixes: Iterable[str] = (),
) -> str:
    """
    Return ``candidate`` if it is a usable image, otherwise ``placeholder``.

    Never raises: ``None``, non-strings and arbitrary text all collapse to
    the placeholder.
    """
    if is_inline_image(candidate):
        return candidate
    if is_served_reference(candidate, reference_prefixes):
        return candidate
    return placeholder


def encode_inline_image(data: bytes, subtype: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:image/{subtype};base64,{encoded}"
