"""Content normalization for change detection.

Fetched documents and stored ``last_content`` are always compared in this
canonical form, so line-ending or surrounding-whitespace differences never
count as a change.
"""

import re

# A run of CRs before LF collapses in one pass; a plain CRLF replace
# would turn "\r\r\n" into "\r\n" and need a second pass.
_CRLF_RE = re.compile(r"\r+\n")


def normalize_content(text: str | None) -> str:
    """Convert CRLF line endings to LF and strip surrounding whitespace."""
    if not text:
        return ""
    return _CRLF_RE.sub("\n", text).strip()
