"""
Operation log writer.

Every order mutation records who did what. Writing the record must never
fail the operation it describes: the insert runs inside a savepoint and any
database error is logged as a warning and dropped.
"""

from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from concrete_plant.core.logging import get_logger
from concrete_plant.database.models.operation_log import OperationLog

logger = get_logger(__name__)


class AuditLogger:
    """Writes :class:`OperationLog` rows within the caller's transaction."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        user_id: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> Optional[OperationLog]:
        """
        Record an operation.

        Args:
            action: Action name such as ``order.create``
            entity_type: Kind of entity acted on
            entity_id: Id of the entity acted on
            user_id: Acting user
            details: JSON serializable payload

        Returns:
            The stored log entry, or None if it could not be written
        """
        entry = OperationLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details or {},
        )

        try:
            async with self.session.begin_nested():
                self.session.add(entry)
        except SQLAlchemyError as e:
            logger.warning(
                "Operation log write failed",
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        logger.debug(
            "Operation logged",
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        return entry
