"""Git blob addressing.

``content_hash`` reproduces the object id git (and therefore GitHub) assigns
to a blob, so a locally computed hash can be compared against a ``sha`` from
a remote tree listing without a network round trip.
"""

from __future__ import annotations

import hashlib


def content_hash(content: str | bytes) -> str:
    """Return the git blob SHA-1 hex digest of *content*.

    The digest covers ``b"blob <size>\\0"`` followed by the raw bytes,
    where ``<size>`` is the byte length.  ``str`` input is encoded as
    UTF-8 first.
    """
    data = content.encode("utf-8") if isinstance(content, str) else content
    header = f"blob {len(data)}\0".encode("ascii")
    return hashlib.sha1(header + data).hexdigest()
