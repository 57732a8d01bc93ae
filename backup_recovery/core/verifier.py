"""
Archive Verifier

Checks that identifiers in an archive are stored as tagged ObjectId values
and not as bare strings. A restore of an archive with bare identifier strings
would insert strings where ObjectIds are expected, silently breaking every
lookup between collections.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..config import BackupRecoveryConfig
from ..exceptions import BackupNotFoundError
from ..models.entities import (
    IdentifierCheck,
    IdentifierStatus,
    VerificationResult,
    VerificationVerdict
)
from ..utils.codec import (
    is_hex_identifier_string,
    is_identifier_field,
    is_tagged_identifier,
    parse_archive_text
)
from ..utils.compression import CompressionHandler
from .local_backend import LocalArchiveStore

logger = logging.getLogger(__name__)


def classify_identifier(value: Any) -> Optional[IdentifierStatus]:
    """
    Classify one raw (still tagged) identifier value.

    Returns:
        TYPED for a tagged ObjectId, PLAIN_STRING for a bare 24-hex string,
        None for anything else (null, numbers, other strings)
    """
    if is_tagged_identifier(value):
        return IdentifierStatus.TYPED
    if is_hex_identifier_string(value):
        return IdentifierStatus.PLAIN_STRING
    return None


def inspect_document(collection_name: str, document: Dict[str, Any]) -> List[IdentifierCheck]:
    """
    Classify ``_id`` and every ``...Id`` field of one raw document.

    Nested documents and lists are walked; paths are dotted with list
    indexes in brackets, e.g. ``items[0].productId``.
    """
    checks = []
    if "_id" not in document:
        checks.append(IdentifierCheck(
            collection_name=collection_name,
            field_path="_id",
            status=IdentifierStatus.ABSENT
        ))
    _walk(collection_name, document, "", checks)
    return checks


def _walk(collection_name: str, value: Any, path: str, checks: List[IdentifierCheck]) -> None:
    if isinstance(value, dict):
        if is_tagged_identifier(value):
            return
        for key, item in value.items():
            field_path = f"{path}.{key}" if path else key
            if is_identifier_field(key):
                _classify_field(collection_name, item, field_path, checks)
            else:
                _walk(collection_name, item, field_path, checks)
    elif isinstance(value, list):
        for index, item in enumerate(value):
            _walk(collection_name, item, f"{path}[{index}]", checks)


def _classify_field(collection_name: str, value: Any, path: str, checks: List[IdentifierCheck]) -> None:
    if isinstance(value, list):
        for index, item in enumerate(value):
            _classify_field(collection_name, item, f"{path}[{index}]", checks)
        return

    status = classify_identifier(value)
    if status is not None:
        checks.append(IdentifierCheck(
            collection_name=collection_name,
            field_path=path,
            status=status
        ))
    elif isinstance(value, dict):
        _walk(collection_name, value, path, checks)


def has_reference_field(document: Dict[str, Any]) -> bool:
    """Check whether a raw document has an identifier field besides ``_id``."""
    return any(check.field_path != "_id" for check in inspect_document("", document))


class ArchiveVerifier:
    """
    Verify identifier typing in an archive.

    The first document of a sample of collections is inspected: the
    configured ``verification_collections`` first, then other collections
    whose first document carries references to other documents, then the
    rest, up to ``verification_sample_limit``. Inspection happens on the raw
    JSON, before any decoding, so a tagged ObjectId and a bare string can be
    told apart.

    The verdict is FAIL as soon as one identifier is a bare 24-hex string.

    Example:
        ```python
        verifier = ArchiveVerifier(config)
        result = verifier.verify()  # most recent archive

        print(f"Collections Checked: {result.collections_checked}")
        print(f"Verdict: {result.verdict.value}")
        ```
    """

    def __init__(self, config: BackupRecoveryConfig, store: Optional[LocalArchiveStore] = None):
        self.config = config
        self.store = store or LocalArchiveStore(config)
        self.compression_handler = CompressionHandler(config.compression_level)

    def verify(self, name_or_path: Optional[Union[str, Path]] = None) -> VerificationResult:
        """
        Verify an archive, the most recent one when no name is given.

        Raises:
            BackupNotFoundError: If the archive (or any archive) does not exist
            BackupCorruptedError: If the archive cannot be decompressed or parsed
        """
        start_time = datetime.now()

        if name_or_path is None:
            latest = self.store.latest_archive()
            if latest is None:
                raise BackupNotFoundError(
                    "No backup files found",
                    storage_path=str(self.store.root_path)
                )
            name_or_path = latest.path

        path = self.store.resolve_archive(name_or_path)
        logger.info(f"Verifying identifier typing in {path.name}")

        payload = self.store.read_archive(path)
        text = self.compression_handler.decompress_text(payload, backup_name=path.name)
        raw = parse_archive_text(text, backup_name=path.name)

        result = self.verify_data(path.name, raw["data"])
        result.duration_ms = (datetime.now() - start_time).total_seconds() * 1000
        return result

    def verify_data(self, backup_name: str, data: Dict[str, List[Any]]) -> VerificationResult:
        """
        Verify the raw ``data`` section of a parsed archive.

        Args:
            backup_name: Name reported in the result
            data: Collection name mapped to raw (undecoded) documents
        """
        warnings = []
        sample = self._select_sample(data, warnings)

        checks: List[IdentifierCheck] = []
        for collection_name in sample:
            documents = data[collection_name]
            collection_checks = inspect_document(collection_name, documents[0])
            self._log_collection(collection_name, len(documents), collection_checks)
            checks.extend(collection_checks)

        if not sample:
            warnings.append("Archive has no documents to inspect")

        counts = {status: 0 for status in IdentifierStatus}
        for check in checks:
            counts[check.status] += 1

        verdict = (
            VerificationVerdict.FAIL
            if counts[IdentifierStatus.PLAIN_STRING] > 0
            else VerificationVerdict.PASS
        )

        for warning in warnings:
            logger.warning(warning)

        result = VerificationResult(
            backup_name=backup_name,
            collections_checked=len(sample),
            properly_typed_count=counts[IdentifierStatus.TYPED],
            regression_count=counts[IdentifierStatus.PLAIN_STRING],
            absent_count=counts[IdentifierStatus.ABSENT],
            checks=checks,
            verdict=verdict,
            warnings=warnings
        )

        if result.passed:
            logger.info(
                f"Verification passed: {result.properly_typed_count} typed identifiers "
                f"in {result.collections_checked} collections"
            )
        else:
            logger.error(
                f"Verification failed: {result.regression_count} identifiers stored as plain strings, "
                f"a restore would break references"
            )
        return result

    def _select_sample(self, data: Dict[str, List[Any]], warnings: List[str]) -> List[str]:
        limit = self.config.verification_sample_limit

        sample = []
        for name in self.config.verification_collections:
            documents = data.get(name)
            if documents is None:
                warnings.append(f"Collection '{name}' is not in the archive")
            elif not documents:
                warnings.append(f"Collection '{name}' is empty in the archive")
            elif isinstance(documents[0], dict):
                sample.append(name)

        others = sorted(
            name for name, documents in data.items()
            if name not in sample and documents and isinstance(documents[0], dict)
        )
        with_references = [name for name in others if has_reference_field(data[name][0])]
        without_references = [name for name in others if name not in with_references]

        return (sample + with_references + without_references)[:limit]

    @staticmethod
    def _log_collection(collection_name: str, document_count: int, checks: List[IdentifierCheck]) -> None:
        logger.info(f"Collection: {collection_name} ({document_count} documents)")
        for check in checks:
            if check.status == IdentifierStatus.TYPED:
                logger.info(f"   ✓ {check.field_path}: ObjectId properly tagged")
            elif check.status == IdentifierStatus.PLAIN_STRING:
                logger.warning(f"   ✗ {check.field_path}: plain string, not an ObjectId")
            else:
                logger.warning(f"   - {check.field_path}: missing")
