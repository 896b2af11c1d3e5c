from datetime import datetime
from enum import Enum
from typing import Annotated, Any, ClassVar, Literal, Optional, Union
from pydantic import BaseModel, Field, ConfigDict, field_validator

DEFAULT_COMMISSION_BPS = 1500
DEFAULT_VEHICLE_TYPE = "motocicleta"


class Role(str, Enum):
    CLIENT = "client"
    RESTAURANT = "restaurant"
    DELIVERY_AGENT = "delivery_agent"
    ADMIN = "admin"


# Spanish role names sent by the registration forms
ROLE_ALIASES = {
    "cliente": Role.CLIENT,
    "restaurante": Role.RESTAURANT,
    "repartidor": Role.DELIVERY_AGENT,
}


class ProvisioningStep(str, Enum):
    VALIDATION = "validation"
    IDENTITY = "identity"
    USER_RECORD = "user_record"
    LEDGER_ACCOUNT = "ledger_account"
    PREFERENCES = "preferences"
    ROLE_PROFILE = "role_profile"
    UNEXPECTED = "unexpected"


class ProvisioningRequest(BaseModel):
    """Form input for a new platform identity.

    Every field is optional at this layer so that missing values reach the
    sequencer and come back as a validation result rather than a 422.
    """

    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    restaurant_name: Optional[str] = None
    vehicle_type: Optional[str] = None

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "email": "tacos@example.com",
            "password": "S3guraPassw0rd",
            "name": "Ana López",
            "phone": "+525512345678",
            "role": "restaurant",
            "restaurant_name": "Tacos Ana",
        }
    })

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            if not value:
                return None
            alias = ROLE_ALIASES.get(value)
            return alias.value if alias else value
        return value

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("name", "phone", "restaurant_name", "vehicle_type", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class RestaurantProfile(BaseModel):
    collection: ClassVar[str] = "restaurants"

    kind: Literal["restaurant"] = "restaurant"
    name: str
    status: str = "approved"
    commission_bps: int = DEFAULT_COMMISSION_BPS

    def to_record(self, user_id: str) -> dict:
        return {"user_id": user_id, **self.model_dump(exclude={"kind"})}


class DeliveryAgentProfile(BaseModel):
    collection: ClassVar[str] = "delivery_agent_profiles"

    kind: Literal["delivery_agent"] = "delivery_agent"
    status: str = "active"
    account_state: str = "approved"
    vehicle_type: str = DEFAULT_VEHICLE_TYPE

    def to_record(self, user_id: str) -> dict:
        return {"user_id": user_id, **self.model_dump(exclude={"kind"})}


class ClientProfile(BaseModel):
    collection: ClassVar[str] = "client_profiles"

    kind: Literal["client"] = "client"
    status: str = "active"

    def to_record(self, user_id: str) -> dict:
        return {"user_id": user_id, **self.model_dump(exclude={"kind"})}


RoleProfile = Annotated[
    Union[RestaurantProfile, DeliveryAgentProfile, ClientProfile],
    Field(discriminator="kind"),
]


class UserPreferences(BaseModel):
    user_id: str
    has_seen_onboarding: bool = False
    has_seen_tour: bool = False
    has_seen_restaurant_welcome: bool = False
    restaurant_welcome_seen_at: Optional[datetime] = None
    has_seen_delivery_welcome: bool = False
    delivery_welcome_seen_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, extra="ignore")


class ProvisioningResult(BaseModel):
    success: bool
    message: str
    identity_id: Optional[str] = None
    error: Optional[str] = None
    failed_step: Optional[ProvisioningStep] = None
    field: Optional[str] = None
    completed_steps: list[ProvisioningStep] = Field(default_factory=list)
    invalidated: list[str] = Field(default_factory=list)
