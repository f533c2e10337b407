"""Upload naming helpers: file name rules and dated directory layouts.

Hosts use these to decide where an upload lands under the storage root.
Remote paths are derived from that local placement afterwards.
"""

import hashlib
import secrets
import string
import time
import uuid
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import PurePosixPath

DEFAULT_DIRECTORY_STRUCTURE = "img/Y/m/d"

# Path segments that expand to a date part
_DATE_TOKENS = {
    "Y": "%Y",
    "m": "%m",
    "d": "%d",
    "H": "%H",
    "i": "%M",
    "s": "%S",
}

_BASE36 = string.digits + string.ascii_lowercase


class FilenameRule(StrEnum):
    ORIGINAL = "original"
    TIMESTAMP = "timestamp"
    MD5 = "md5"
    SHA1 = "sha1"
    UUID = "uuid"


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("Only non-negative integers can be base36 encoded")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_filename(
    rule: FilenameRule | str,
    original_name: str,
    content: bytes | None = None,
) -> str:
    """Name an upload according to a rule, keeping the original extension.

    Args:
        rule: One of ``FilenameRule``
        original_name: Client-supplied file name
        content: File bytes; required for the hash rules

    Returns:
        New file name

    Raises:
        ValueError: For an unknown rule, or a hash rule without content
    """
    rule = FilenameRule(rule)
    original = PurePosixPath(original_name.replace("\\", "/")).name
    suffix = PurePosixPath(original).suffix.lower()

    if rule == FilenameRule.ORIGINAL:
        return original
    if rule == FilenameRule.TIMESTAMP:
        stamp = to_base36(time.time_ns() // 1_000_000)
        return f"{stamp}{to_base36(secrets.randbelow(36**4))}{suffix}"
    if rule == FilenameRule.UUID:
        return f"{uuid.uuid4()}{suffix}"

    if content is None:
        raise ValueError(f"Filename rule '{rule}' needs the file content")
    if rule == FilenameRule.MD5:
        return f"{hashlib.md5(content).hexdigest()}{suffix}"
    return f"{hashlib.sha1(content).hexdigest()}{suffix}"


def expand_directory_structure(
    pattern: str = DEFAULT_DIRECTORY_STRUCTURE, when: datetime | None = None
) -> str:
    """Expand date tokens in a directory pattern.

    Only whole path segments are tokens, so ``img/Y/m`` becomes
    ``img/2024/01`` while the ``i`` inside ``img`` is left alone.
    """
    when = when or datetime.now(UTC)
    segments = []
    for segment in pattern.strip("/").split("/"):
        if not segment:
            continue
        token = _DATE_TOKENS.get(segment)
        segments.append(when.strftime(token) if token else segment)
    return "/".join(segments)
