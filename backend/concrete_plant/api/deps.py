"""
FastAPI dependencies shared by the API routes.

Authentication is handled upstream; the acting user is identified by the
optional ``X-User-ID`` header forwarded by the gateway.
"""

from typing import Annotated, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from concrete_plant.core.logging import get_logger, set_user_id
from concrete_plant.database.connection import get_db
from concrete_plant.services.orders.service import OrderService

logger = get_logger(__name__)


async def get_acting_user_id(
    x_user_id: Annotated[Optional[int], Header(alias="X-User-ID", gt=0)] = None,
) -> Optional[int]:
    """
    Read the acting user from the request and bind it to the log context.

    Returns:
        User id, or None for anonymous calls
    """
    if x_user_id is not None:
        set_user_id(str(x_user_id))
    return x_user_id


DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
ActingUserId = Annotated[Optional[int], Depends(get_acting_user_id)]


def get_order_service(db: DatabaseSession) -> OrderService:
    return OrderService(db)


OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
