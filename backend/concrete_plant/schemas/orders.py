"""
Order Pydantic schemas for API request/response validation.

This module defines the request bodies for creating and updating orders
and changing their status, the query parameters accepted by the listing
endpoint, and the response shapes for orders, pages and statistics.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from concrete_plant.services.orders.enums import OrderStatus

SortField = Literal[
    "created_at",
    "required_delivery_time",
    "total_volume",
    "total_amount",
    "order_no",
]


class OrderItemRequest(BaseModel):
    """Order line item.

    ``total_price`` is computed by the server; a value sent by the client is
    accepted and ignored.
    """

    model_config = ConfigDict(validate_assignment=True)

    recipe_id: int = Field(
        ...,
        gt=0,
        description="Concrete recipe ID",
    )
    volume: Decimal = Field(
        ...,
        gt=0,
        max_digits=12,
        decimal_places=2,
        description="Volume in cubic metres",
    )
    unit_price: Decimal = Field(
        ...,
        ge=0,
        max_digits=12,
        decimal_places=2,
        description="Price per cubic metre",
    )
    total_price: Optional[Decimal] = Field(
        None,
        description="Ignored, always recomputed as volume * unit_price",
    )
    remarks: Optional[str] = Field(
        None,
        max_length=500,
        description="Line item remarks",
    )


class OrderCreateRequest(BaseModel):
    """Request schema for creating a new order."""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    site_id: int = Field(..., gt=0, description="Owning site ID")
    order_no: Optional[str] = Field(
        None,
        min_length=1,
        max_length=50,
        description="Order number, generated when omitted",
    )
    customer_name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Customer name",
    )
    customer_phone: Optional[str] = Field(
        None,
        max_length=30,
        description="Customer contact phone",
    )
    project_name: Optional[str] = Field(
        None,
        max_length=200,
        description="Construction project name",
    )
    construction_site: Optional[str] = Field(
        None,
        max_length=255,
        description="Delivery address on the construction site",
    )
    required_delivery_time: Optional[datetime] = Field(
        None,
        description="Requested delivery time",
    )
    total_volume: Optional[Decimal] = Field(
        None,
        ge=0,
        max_digits=12,
        decimal_places=2,
        description="Total volume, defaults to the sum of item volumes",
    )
    total_amount: Optional[Decimal] = Field(
        None,
        ge=0,
        max_digits=14,
        decimal_places=2,
        description="Total amount, defaults to the sum of item totals",
    )
    remarks: Optional[str] = Field(
        None,
        max_length=1000,
        description="Order remarks",
    )
    items: list[OrderItemRequest] = Field(
        default_factory=list,
        max_length=50,
        description="Order line items",
    )


class OrderUpdateRequest(BaseModel):
    """Request schema for updating an existing order.

    Only fields present in the body are changed. ``items``, when present,
    replaces every line item of the order. Status cannot be changed here.
    """

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="forbid",
    )

    order_no: Optional[str] = Field(None, min_length=1, max_length=50)
    customer_name: Optional[str] = Field(None, min_length=1, max_length=100)
    customer_phone: Optional[str] = Field(None, max_length=30)
    project_name: Optional[str] = Field(None, max_length=200)
    construction_site: Optional[str] = Field(None, max_length=255)
    required_delivery_time: Optional[datetime] = None
    total_volume: Optional[Decimal] = Field(
        None, ge=0, max_digits=12, decimal_places=2
    )
    total_amount: Optional[Decimal] = Field(
        None, ge=0, max_digits=14, decimal_places=2
    )
    remarks: Optional[str] = Field(None, max_length=1000)
    items: Optional[list[OrderItemRequest]] = Field(None, max_length=50)

    @model_validator(mode="after")
    def validate_required_fields_not_null(self) -> "OrderUpdateRequest":
        """Reject explicit nulls for columns that cannot be empty."""
        for name in ("order_no", "customer_name", "total_volume", "total_amount", "items"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class OrderStatusUpdate(BaseModel):
    """Request schema for changing order status."""

    status: OrderStatus = Field(..., description="Requested status")

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        if isinstance(v, str):
            return OrderStatus.from_string(v)
        return v


class OrderListQuery(BaseModel):
    """Query parameters for listing orders."""

    site_id: Optional[int] = Field(None, gt=0)
    order_no: Optional[str] = Field(None, max_length=50)
    customer_name: Optional[str] = Field(None, max_length=100)
    project_name: Optional[str] = Field(None, max_length=200)
    status: Optional[OrderStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1)
    sort_by: SortField = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"

    @model_validator(mode="after")
    def validate_date_range(self) -> "OrderListQuery":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class OrderItemResponse(BaseModel):
    """Order item response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    recipe_id: int
    volume: Decimal
    unit_price: Decimal
    total_price: Decimal
    remarks: Optional[str] = None


class TaskSummaryResponse(BaseModel):
    """Delivery task referencing the order."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    task_no: str
    status: str
    created_at: datetime

    @field_validator("status", mode="before")
    @classmethod
    def status_value(cls, v):
        return getattr(v, "value", v)


class OrderResponse(BaseModel):
    """Complete order response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    order_no: str
    site_id: int
    customer_name: str
    customer_phone: Optional[str] = None
    project_name: Optional[str] = None
    construction_site: Optional[str] = None
    required_delivery_time: Optional[datetime] = None
    total_volume: Decimal
    total_amount: Decimal
    status: OrderStatus
    remarks: Optional[str] = None
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    items: list[OrderItemResponse] = Field(default_factory=list)
    tasks: list[TaskSummaryResponse] = Field(default_factory=list)


class OrderListResponse(BaseModel):
    """One page of orders."""

    data: list[OrderResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class OrderDeleteResponse(BaseModel):
    message: str


class OrderStatisticsResponse(BaseModel):
    """Order rollups for dashboards."""

    total_orders: int
    status_count: dict[str, int]
    total_volume: Decimal
    total_amount: Decimal
