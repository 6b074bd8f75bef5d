"""Slug generation for heading routes"""

import re


_SLUG_RE = re.compile(r'[^a-z0-9_./]+')


def slugify(text: str) -> str:
    """Lowercase text and collapse each run of non-route characters to one hyphen.

    Dots and slashes survive so slugs can be joined into routes. Leading and
    trailing hyphens are kept: "Really Cool Heading!" -> "really-cool-heading-".
    """
    return _SLUG_RE.sub('-', text.lower())
