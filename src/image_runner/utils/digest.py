"""Digest format utilities."""

import re
from typing import Any

# Regex pattern for valid digest format (algorithm:hex)
DIGEST_PATTERN = re.compile(r"^[a-z0-9]+:[a-f0-9]+$")

SUPPORTED_ALGORITHMS = ("sha256", "sha512")


def validate_digest(digest: Any) -> bool:
    """Validate digest format.

    Digests come from an untrusted manifest and end up in a blob URL, so
    anything that is not ``algorithm:hex`` is refused.

    Args:
        digest: Digest string to validate

    Returns:
        True if valid digest format
    """
    if not isinstance(digest, str):
        return False

    if not DIGEST_PATTERN.match(digest):
        return False

    algorithm, _ = digest.split(":", 1)
    return algorithm in SUPPORTED_ALGORITHMS


def short_digest(digest: str, length: int = 12) -> str:
    """Shorten a digest for log output (``sha256:abcdef012345``)."""
    algorithm, _, hex_part = digest.partition(":")
    if not hex_part:
        return digest[:length]
    return f"{algorithm}:{hex_part[:length]}"
