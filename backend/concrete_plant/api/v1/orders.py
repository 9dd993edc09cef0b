"""
Order management API endpoints.

This module implements the FastAPI router for the order lifecycle: creation,
listing, statistics, retrieval, partial updates, status changes and
deletion. Domain errors raised by the service are translated into HTTP
errors carrying the error kind, a message and its context.
"""

from datetime import date
from typing import Annotated, NoReturn, Optional

from fastapi import APIRouter, HTTPException, Query, status

from concrete_plant.api.deps import ActingUserId, OrderServiceDep
from concrete_plant.core.logging import get_logger
from concrete_plant.schemas.orders import (
    OrderCreateRequest,
    OrderDeleteResponse,
    OrderListQuery,
    OrderListResponse,
    OrderResponse,
    OrderStatisticsResponse,
    OrderStatusUpdate,
    OrderUpdateRequest,
)
from concrete_plant.services.orders.exceptions import (
    InvalidOperationError,
    InvalidTransitionError,
    OrderConflictError,
    OrderNotFoundError,
    OrderServiceError,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])

ERROR_STATUS = {
    OrderNotFoundError: (status.HTTP_404_NOT_FOUND, "not_found"),
    OrderConflictError: (status.HTTP_409_CONFLICT, "conflict"),
    InvalidTransitionError: (status.HTTP_400_BAD_REQUEST, "invalid_transition"),
    InvalidOperationError: (status.HTTP_400_BAD_REQUEST, "invalid_operation"),
}


def raise_http_error(error: OrderServiceError, operation: str) -> NoReturn:
    """
    Translate a domain error into an HTTPException.

    Errors without a mapping (database failures) become a 500 whose message
    does not leak internals.
    """
    for error_type, (status_code, kind) in ERROR_STATUS.items():
        if isinstance(error, error_type):
            logger.warning(
                "Order operation rejected",
                operation=operation,
                error=kind,
                message=error.message,
                context=error.context,
            )
            raise HTTPException(
                status_code=status_code,
                detail={
                    "error": kind,
                    "message": error.message,
                    "context": error.context,
                },
            ) from error

    logger.error(
        "Order operation failed",
        operation=operation,
        error=error.message,
        context=error.context,
    )
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "internal_error",
            "message": f"Failed to {operation.replace('_', ' ')}",
            "context": {},
        },
    ) from error


@router.post(
    "/",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new order",
    description="Create a pending order together with its line items",
)
async def create_order(
    request: OrderCreateRequest,
    service: OrderServiceDep,
    user_id: ActingUserId,
) -> OrderResponse:
    """
    Create new order.

    Raises:
        HTTPException: 404 if the site or a recipe is missing, 409 if the
            order number is taken within the site
    """
    logger.info(
        "Creating order",
        site_id=request.site_id,
        item_count=len(request.items),
    )

    try:
        order = await service.create_order(request, user_id=user_id)
    except OrderServiceError as e:
        raise_http_error(e, "create_order")

    logger.info("Order created successfully", order_id=order.id, order_no=order.order_no)
    return OrderResponse.model_validate(order)


@router.get(
    "/",
    response_model=OrderListResponse,
    summary="List orders",
    description="Paginated, filterable list of active orders",
)
async def list_orders(
    query: Annotated[OrderListQuery, Query()],
    service: OrderServiceDep,
) -> OrderListResponse:
    logger.info(
        "Listing orders",
        site_id=query.site_id,
        status_filter=query.status.value if query.status else None,
        page=query.page,
        limit=query.limit,
    )

    try:
        result = await service.list_orders(query)
    except OrderServiceError as e:
        raise_http_error(e, "list_orders")

    return OrderListResponse(
        data=[OrderResponse.model_validate(order) for order in result["data"]],
        total=result["total"],
        page=result["page"],
        limit=result["limit"],
        total_pages=result["total_pages"],
    )


@router.get(
    "/statistics",
    response_model=OrderStatisticsResponse,
    summary="Order statistics",
    description="Order counts per status and volume/amount totals",
)
async def get_statistics(
    service: OrderServiceDep,
    site_id: Optional[int] = Query(None, gt=0, description="Filter by site"),
    start_date: Optional[date] = Query(None, description="First creation date included"),
    end_date: Optional[date] = Query(None, description="Last creation date included"),
) -> OrderStatisticsResponse:
    """
    Get order statistics.

    Both ends of the date range are inclusive.
    """
    if start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="start_date must not be after end_date",
        )

    try:
        statistics = await service.get_statistics(
            site_id=site_id,
            start_date=start_date,
            end_date=end_date,
        )
    except OrderServiceError as e:
        raise_http_error(e, "get_statistics")

    return OrderStatisticsResponse(**statistics)


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order details",
)
async def get_order(order_id: int, service: OrderServiceDep) -> OrderResponse:
    try:
        order = await service.get_order(order_id)
    except OrderServiceError as e:
        raise_http_error(e, "get_order")

    return OrderResponse.model_validate(order)


@router.patch(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Update order",
    description="Update order fields; items, when given, replace all line items",
)
async def update_order(
    order_id: int,
    request: OrderUpdateRequest,
    service: OrderServiceDep,
    user_id: ActingUserId,
) -> OrderResponse:
    """
    Update order details.

    Raises:
        HTTPException: 404 if not found, 400 if the order is completed or
            cancelled, 409 if the new order number is taken
    """
    logger.info(
        "Updating order",
        order_id=order_id,
        fields=sorted(request.model_fields_set),
    )

    try:
        order = await service.update_order(order_id, request, user_id=user_id)
    except OrderServiceError as e:
        raise_http_error(e, "update_order")

    logger.info("Order updated successfully", order_id=order_id)
    return OrderResponse.model_validate(order)


@router.patch(
    "/{order_id}/status",
    response_model=OrderResponse,
    summary="Change order status",
    description="Move the order along its lifecycle",
)
async def change_order_status(
    order_id: int,
    request: OrderStatusUpdate,
    service: OrderServiceDep,
    user_id: ActingUserId,
) -> OrderResponse:
    """
    Change order status.

    Raises:
        HTTPException: 404 if not found, 400 if the transition is not allowed
    """
    logger.info(
        "Changing order status",
        order_id=order_id,
        new_status=request.status.value,
    )

    try:
        order = await service.change_status(order_id, request.status, user_id=user_id)
    except OrderServiceError as e:
        raise_http_error(e, "change_status")

    logger.info(
        "Order status changed successfully",
        order_id=order_id,
        new_status=order.status.value,
    )
    return OrderResponse.model_validate(order)


@router.delete(
    "/{order_id}",
    response_model=OrderDeleteResponse,
    summary="Delete order",
    description="Archive an order that is not in production",
)
async def delete_order(
    order_id: int,
    service: OrderServiceDep,
    user_id: ActingUserId,
) -> OrderDeleteResponse:
    """
    Delete (archive) an order.

    Raises:
        HTTPException: 404 if not found, 400 if the order is in production
    """
    logger.info("Deleting order", order_id=order_id)

    try:
        result = await service.delete_order(order_id, user_id=user_id)
    except OrderServiceError as e:
        raise_http_error(e, "delete_order")

    return OrderDeleteResponse(**result)
