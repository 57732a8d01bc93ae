"""
Archive Codec

Converts documents to and from the archive's text form without losing BSON
types. Every ObjectId, at any depth, is written as a tagged ``{"$oid": ...}``
object (MongoDB Extended JSON, relaxed mode) and only tagged values are turned
back into ObjectId on the way in. A bare 24-hex string stays a string.

Archives written before identifiers were tagged can still be re-typed with
``promote_legacy_identifiers``, which applies the field-name heuristic
``key == "_id" or key.endswith("Id")``. That path is opt-in only.
"""

import json
import logging
import re
from typing import Any, Dict, Mapping, Optional

from bson import ObjectId
from bson.binary import UuidRepresentation
from bson.errors import BSONError
from bson.json_util import JSONMode, JSONOptions, default, object_hook

from ..exceptions import ArchiveFormatError, BackupCorruptedError

logger = logging.getLogger(__name__)


ARCHIVE_JSON_OPTIONS = JSONOptions(
    json_mode=JSONMode.RELAXED,
    tz_aware=False,
    uuid_representation=UuidRepresentation.STANDARD
)

OBJECT_ID_TAG = "$oid"
OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")

_JSON_SCALARS = (str, int, float, bool, type(None))


def is_identifier_field(key: str) -> bool:
    """Return True for ``_id`` and any field name ending in ``Id``."""
    return key == "_id" or key.endswith("Id")


def is_hex_identifier_string(value: Any) -> bool:
    """Return True for a plain string of exactly 24 hex characters."""
    return isinstance(value, str) and OBJECT_ID_PATTERN.match(value) is not None


def is_tagged_identifier(value: Any) -> bool:
    """Return True for a ``{"$oid": "<24 hex>"}`` object."""
    return (
        isinstance(value, Mapping)
        and len(value) == 1
        and is_hex_identifier_string(value.get(OBJECT_ID_TAG))
    )


def encode_value(value: Any) -> Any:
    """
    Convert a document (or any value inside one) into JSON-safe data.

    Mappings and sequences are walked recursively. BSON values such as
    ObjectId, datetime, Decimal128 or Binary become their tagged Extended
    JSON form.

    Raises:
        TypeError: If a value has no Extended JSON representation
    """
    if isinstance(value, _JSON_SCALARS):
        return value
    if isinstance(value, Mapping):
        return {str(key): encode_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(item) for item in value]
    return default(value, json_options=ARCHIVE_JSON_OPTIONS)


def decode_value(value: Any) -> Any:
    """
    Rebuild BSON values from parsed archive JSON.

    Objects are rebuilt bottom-up, the same order ``json.loads`` applies an
    ``object_hook`` in, so nested tags resolve before their parents.
    """
    if isinstance(value, dict):
        decoded = {key: decode_value(item) for key, item in value.items()}
        return object_hook(decoded, json_options=ARCHIVE_JSON_OPTIONS)
    if isinstance(value, list):
        return [decode_value(item) for item in value]
    return value


def promote_legacy_identifiers(value: Any, key: Optional[str] = None) -> Any:
    """
    Re-type bare 24-hex strings held in identifier fields.

    Only meant for archives from the legacy untagged format. A string is
    promoted when its own field name passes ``is_identifier_field``; strings
    inside lists inherit the list's field name.

    Args:
        value: Decoded document or value
        key: Field name the value is stored under

    Returns:
        A copy with matching strings replaced by ObjectId
    """
    if isinstance(value, dict):
        return {
            field: promote_legacy_identifiers(item, field)
            for field, item in value.items()
        }
    if isinstance(value, list):
        return [promote_legacy_identifiers(item, key) for item in value]
    if key is not None and is_identifier_field(key) and is_hex_identifier_string(value):
        return ObjectId(value)
    return value


def dumps_archive(archive: Mapping[str, Any], indent: Optional[int] = 2) -> str:
    """Serialize a full archive (``metadata`` + ``data``) to text."""
    return json.dumps(encode_value(archive), indent=indent)


def parse_archive_text(text: str, backup_name: Optional[str] = None) -> Dict[str, Any]:
    """
    Parse archive text to plain JSON data, leaving every tag in place.

    The verifier inspects this raw form, where a tagged identifier and a
    bare string are still distinguishable.

    Raises:
        BackupCorruptedError: If the text is not valid JSON
        ArchiveFormatError: If the ``metadata``/``data`` layout is missing
    """
    try:
        raw = json.loads(text)
    except ValueError as e:
        raise BackupCorruptedError(
            f"Archive is not valid JSON: {e}",
            backup_name=backup_name
        ) from e

    problems = validate_archive_layout(raw)
    if problems:
        raise ArchiveFormatError(
            f"Archive layout is invalid: {'; '.join(problems)}",
            backup_name=backup_name,
            problems=problems
        )
    return raw


def validate_archive_layout(raw: Any) -> list:
    """Return a list of structural problems, empty when the layout is usable."""
    if not isinstance(raw, dict):
        return ["top level is not an object"]

    problems = []
    if not isinstance(raw.get("metadata"), dict):
        problems.append("missing 'metadata' object")
    data = raw.get("data")
    if not isinstance(data, dict):
        problems.append("missing 'data' object")
    else:
        for name, documents in data.items():
            if not isinstance(documents, list):
                problems.append(f"collection '{name}' is not a list")
    return problems


def loads_archive(
    text: str,
    backup_name: Optional[str] = None,
    promote_legacy: bool = False
) -> Dict[str, Any]:
    """
    Parse archive text and rebuild BSON values.

    Args:
        text: Decompressed archive text
        backup_name: Archive name used in error messages
        promote_legacy: Also re-type bare identifier strings in
            ``_id``/``...Id`` fields (legacy untagged archives only)

    Returns:
        Dictionary with ``metadata`` and ``data`` keys

    Raises:
        BackupCorruptedError: If the text or one of its tags cannot be decoded
    """
    raw = parse_archive_text(text, backup_name)
    return decode_archive(raw, backup_name, promote_legacy)


def decode_archive(
    raw: Dict[str, Any],
    backup_name: Optional[str] = None,
    promote_legacy: bool = False
) -> Dict[str, Any]:
    """
    Rebuild BSON values in an archive already parsed by ``parse_archive_text``.

    Raises:
        BackupCorruptedError: If a tagged value cannot be decoded
    """
    try:
        archive = decode_value(raw)
    except (ValueError, TypeError, KeyError, BSONError) as e:
        raise BackupCorruptedError(
            f"Archive contains an undecodable value: {e}",
            backup_name=backup_name
        ) from e

    if promote_legacy:
        logger.warning(f"Promoting untagged identifier strings in {backup_name or 'archive'}")
        archive["data"] = promote_legacy_identifiers(archive["data"])
    return archive
