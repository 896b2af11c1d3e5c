from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, ConfigDict, computed_field, field_validator


class AccountType(str, Enum):
    RESTAURANT = "restaurant"
    DELIVERY_AGENT = "delivery_agent"
    CLIENT = "client"
    ADMIN = "admin"
    PLATFORM = "platform"
    PLATFORM_REVENUE = "platform_revenue"
    PLATFORM_PAYABLES = "platform_payables"


class BalanceBucket(str, Enum):
    RESTAURANTS = "restaurants"
    DELIVERY_AGENTS = "delivery_agents"
    CLIENTS = "clients"
    PLATFORM = "platform"


# Account types missing here (admin, anything unknown) are left out of every bucket.
BUCKET_BY_ACCOUNT_TYPE: dict[str, BalanceBucket] = {
    AccountType.RESTAURANT.value: BalanceBucket.RESTAURANTS,
    AccountType.DELIVERY_AGENT.value: BalanceBucket.DELIVERY_AGENTS,
    AccountType.CLIENT.value: BalanceBucket.CLIENTS,
    AccountType.PLATFORM.value: BalanceBucket.PLATFORM,
    AccountType.PLATFORM_REVENUE.value: BalanceBucket.PLATFORM,
    AccountType.PLATFORM_PAYABLES.value: BalanceBucket.PLATFORM,
}


class BalanceSummary(BaseModel):
    restaurants: Decimal = Decimal("0")
    delivery_agents: Decimal = Decimal("0")
    clients: Decimal = Decimal("0")
    platform: Decimal = Decimal("0")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "restaurants": "150.00",
            "delivery_agents": "0.00",
            "clients": "-30.00",
            "platform": "20.00",
        }
    })

    @computed_field
    @property
    def system_total(self) -> Decimal:
        return self.restaurants + self.delivery_agents + self.clients + self.platform

    def is_zero_sum(self, tolerance: Decimal = Decimal("1")) -> bool:
        return abs(self.system_total) < tolerance


class TransactionFilters(BaseModel):
    type: Optional[str] = None
    account_type: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("type", "account_type")
    @classmethod
    def _all_means_unfiltered(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "" or value == "all":
            return None
        return value

    # date-only or naive bounds are taken as UTC
    @field_validator("start_date", "end_date")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class RestaurantRef(BaseModel):
    name: str


class AccountOwner(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    restaurant: list[RestaurantRef] = Field(default_factory=list)

    @field_validator("restaurant", mode="before")
    @classmethod
    def _as_list(cls, value: Any) -> Any:
        # one-to-one relationships come back as a single object
        if value is None:
            return []
        if isinstance(value, dict):
            return [value]
        return value


class TransactionAccount(BaseModel):
    account_type: str
    user: Optional[AccountOwner] = None


class TransactionRow(BaseModel):
    id: str
    created_at: datetime
    amount: Decimal
    type: str
    description: Optional[str] = None
    order_id: Optional[str] = None
    account_id: Optional[str] = None
    account: Optional[TransactionAccount] = None

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def display_name(self) -> Optional[str]:
        if self.account is None or self.account.user is None:
            return None
        owner = self.account.user
        if owner.restaurant:
            return owner.restaurant[0].name
        return owner.name or owner.email


class TransactionPage(BaseModel):
    rows: list[TransactionRow]
    total_count: int
    total_pages: int
    page: int
    page_size: int
