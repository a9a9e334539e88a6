"""Parsing and building of object-storage URNs.

Storage objects created through the Data Management API are identified by
URNs of the form ``urn:adsk.objects:os.object:<bucket>/<object>``. The object
key may itself contain ``/`` separators, so it has to be percent-encoded as a
single segment whenever it is placed in an OSS URL path.
"""

from __future__ import annotations

import re
from typing import NamedTuple
from urllib.parse import quote, unquote

from acc_uploader.exceptions import InvalidIdentifierError

URN_PREFIX = "urn:adsk.objects:os.object:"

_URN_PATTERN = re.compile(r"^urn:adsk\.objects:os\.object:([^/]+)/(.+)$")


class ObjectKey(NamedTuple):
    """Bucket and object key pair decoded from a storage object URN."""

    bucket_key: str
    object_key: str


def decode(object_id: str) -> ObjectKey:
    """Split a storage object URN into its bucket and object keys.

    Percent-escapes in the object key are decoded, so
    ``urn:adsk.objects:os.object:bucketA/obj%2Fpath`` yields
    ``ObjectKey("bucketA", "obj/path")``.

    Raises:
        InvalidIdentifierError: If object_id is not a storage object URN
    """
    match = _URN_PATTERN.match(object_id or "")
    if not match:
        raise InvalidIdentifierError(object_id)
    bucket_key, object_key = match.groups()
    return ObjectKey(bucket_key=bucket_key, object_key=unquote(object_key))


def encode(bucket_key: str, object_key: str) -> str:
    """Build the storage object URN for a bucket/object pair.

    The object key is percent-encoded (slashes excepted), so decode() gives
    back exactly the key passed in, including any literal ``%``.
    """
    if not bucket_key or not object_key or "/" in bucket_key:
        raise InvalidIdentifierError(f"{bucket_key}/{object_key}")
    return f"{URN_PREFIX}{bucket_key}/{quote(object_key, safe='/')}"


def object_path(bucket_key: str, object_key: str) -> str:
    """Return the OSS path of an object, with the key encoded as one segment."""
    return f"/oss/v2/buckets/{quote(bucket_key, safe='')}/objects/{quote(object_key, safe='')}"
