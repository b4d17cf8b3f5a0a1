"""
Configuration store.

Loads and publishes versioned ConfigurationSnapshot documents.
"""

from typing import Any

from loguru import logger
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from compensation.config.snapshot import DEFAULT_SNAPSHOT, ConfigurationSnapshot
from compensation.repositories.config_document_repository import (
    ConfigDocumentRepository,
)
from compensation.utils.exceptions import ValidationError


class ConfigurationStore:
    """
    Read and append configuration versions.

    Documents are never edited in place: publishing writes version N+1.
    Callers load one snapshot per operation or batch tick and pass it down
    explicitly.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize configuration store.

        Args:
            session: Async database session
        """
        self.session = session
        self.repository = ConfigDocumentRepository(session)

    async def get_current(self) -> ConfigurationSnapshot:
        """
        Get the latest published snapshot.

        Returns:
            Parsed snapshot, or built-in defaults (version 0) if nothing
            was published yet
        """
        document = await self.repository.get_latest()
        if document is None:
            logger.debug("No configuration published, using defaults")
            return DEFAULT_SNAPSHOT

        return parse_snapshot(document.document, document.version)

    async def publish(
        self, document: dict[str, Any], published_by: str | None = None
    ) -> ConfigurationSnapshot:
        """
        Validate and append a new configuration version.

        The caller owns the commit.

        Args:
            document: Raw configuration document
            published_by: Operator identifier for the audit trail

        Returns:
            Published snapshot carrying its new version

        Raises:
            ValidationError: If the document does not parse
        """
        version = await self.repository.get_max_version() + 1
        snapshot = parse_snapshot(document, version)

        await self.repository.create(
            version=version,
            document=snapshot.model_dump(mode="json", by_alias=True),
            published_by=published_by,
        )

        logger.info(
            "Configuration published",
            extra={"version": version, "published_by": published_by},
        )
        return snapshot


def parse_snapshot(
    document: dict[str, Any], version: int
) -> ConfigurationSnapshot:
    """
    Parse a raw document into a snapshot with the given version.

    Args:
        document: Raw configuration document
        version: Version to stamp on the snapshot

    Returns:
        Snapshot

    Raises:
        ValidationError: If the document does not parse
    """
    try:
        return ConfigurationSnapshot.model_validate({**document, "version": version})
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid configuration document: {e}") from e
