"""URL canonicalisation used for matching claims against catalog links."""

from __future__ import annotations

import re

_scheme_pattern = re.compile(r"^https?://")
_trailing_slashes = re.compile(r"/+$")


def normalize_url(raw: str) -> str:
    """Lowercase, trim, drop an http(s) scheme and any trailing slashes.

    Must stay in step with how the catalog fills ``url_normalized``. Query
    strings, fragments and percent-encoding are compared verbatim.
    """

    value = raw.lower().strip()
    value = _scheme_pattern.sub("", value, count=1)
    return _trailing_slashes.sub("", value)
