"""
Backup Recovery Utilities

Exports the archive codec, compression handling and retention policy
management.
"""

from .codec import (
    encode_value,
    decode_value,
    dumps_archive,
    loads_archive,
    decode_archive,
    parse_archive_text,
    is_identifier_field,
    is_tagged_identifier,
    is_hex_identifier_string,
    promote_legacy_identifiers,
    ARCHIVE_JSON_OPTIONS
)
from .compression import CompressionHandler
from .retention import RetentionPolicyManager

__all__ = [
    'encode_value',
    'decode_value',
    'dumps_archive',
    'loads_archive',
    'decode_archive',
    'parse_archive_text',
    'is_identifier_field',
    'is_tagged_identifier',
    'is_hex_identifier_string',
    'promote_legacy_identifiers',
    'ARCHIVE_JSON_OPTIONS',
    'CompressionHandler',
    'RetentionPolicyManager'
]
