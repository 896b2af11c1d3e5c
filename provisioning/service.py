import logging
from decimal import Decimal
from typing import Callable, Optional

from store import AuthProvider, DataStore, StoreError

from . import messages
from .models import (
    DEFAULT_COMMISSION_BPS,
    DEFAULT_VEHICLE_TYPE,
    ClientProfile,
    DeliveryAgentProfile,
    ProvisioningRequest,
    ProvisioningResult,
    ProvisioningStep,
    RestaurantProfile,
    Role,
    RoleProfile,
    UserPreferences,
)

logger = logging.getLogger(__name__)

INVALIDATED_LISTINGS = ("users", "restaurants", "couriers")
REQUIRED_FIELDS = ("email", "password", "name", "role")

ProfileBuilder = Callable[[ProvisioningRequest, "ProvisioningSequencer"], Optional[RoleProfile]]


def _restaurant_profile(request: ProvisioningRequest, sequencer: "ProvisioningSequencer") -> RoleProfile:
    return RestaurantProfile(name=request.restaurant_name, commission_bps=sequencer.commission_bps)


def _delivery_agent_profile(request: ProvisioningRequest, sequencer: "ProvisioningSequencer") -> RoleProfile:
    return DeliveryAgentProfile(vehicle_type=request.vehicle_type or sequencer.default_vehicle_type)


def _client_profile(request: ProvisioningRequest, sequencer: "ProvisioningSequencer") -> RoleProfile:
    return ClientProfile()


def _no_profile(request: ProvisioningRequest, sequencer: "ProvisioningSequencer") -> None:
    return None


PROFILE_BUILDERS: dict[Role, ProfileBuilder] = {
    Role.RESTAURANT: _restaurant_profile,
    Role.DELIVERY_AGENT: _delivery_agent_profile,
    Role.CLIENT: _client_profile,
    Role.ADMIN: _no_profile,
}

_unmapped = set(Role) - PROFILE_BUILDERS.keys()
if _unmapped:
    raise RuntimeError(f"No role profile builder for: {sorted(r.value for r in _unmapped)}")


def _blank(value: Optional[str]) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_request(request: ProvisioningRequest) -> Optional[ProvisioningResult]:
    missing = [name for name in REQUIRED_FIELDS if _blank(getattr(request, name))]
    if missing:
        return ProvisioningResult(
            success=False,
            message=messages.missing_fields(missing),
            error=f"Missing fields: {', '.join(missing)}",
            failed_step=ProvisioningStep.VALIDATION,
            field=missing[0],
        )
    if request.role not in {r.value for r in Role}:
        return ProvisioningResult(
            success=False,
            message=f"{messages.UNKNOWN_ROLE}: {request.role}",
            error=f"Unknown role: {request.role}",
            failed_step=ProvisioningStep.VALIDATION,
            field="role",
        )
    if request.role == Role.RESTAURANT and _blank(request.restaurant_name):
        return ProvisioningResult(
            success=False,
            message=messages.MISSING_RESTAURANT_NAME,
            error="Missing restaurant name",
            failed_step=ProvisioningStep.VALIDATION,
            field="restaurant_name",
        )
    return None


class _Run:
    """What one provisioning run has written so far."""

    def __init__(self) -> None:
        self.identity_id: Optional[str] = None
        self.completed: list[ProvisioningStep] = []


class ProvisioningSequencer:
    """Creates an identity and its dependent records one write at a time.

    Order: credential, users row, ledger account, preferences, role profile.
    The first failing write ends the run; earlier writes are not undone,
    so `completed_steps` on a failed result lists what was left behind.
    """

    def __init__(
        self,
        store: DataStore,
        auth: AuthProvider,
        on_invalidate: Optional[Callable[[list[str]], None]] = None,
        commission_bps: int = DEFAULT_COMMISSION_BPS,
        default_vehicle_type: str = DEFAULT_VEHICLE_TYPE,
    ):
        self.store = store
        self.auth = auth
        self.on_invalidate = on_invalidate
        self.commission_bps = commission_bps
        self.default_vehicle_type = default_vehicle_type

    async def provision_identity(self, request: ProvisioningRequest) -> ProvisioningResult:
        invalid = validate_request(request)
        if invalid is not None:
            logger.warning("Rejected provisioning request: %s", invalid.error)
            return invalid

        run = _Run()
        try:
            return await self._run(request, run)
        except Exception as e:
            logger.exception("Unexpected error provisioning %s (identity %s)", request.email, run.identity_id)
            return ProvisioningResult(
                success=False,
                message=messages.UNEXPECTED + str(e),
                error=str(e),
                identity_id=run.identity_id,
                failed_step=ProvisioningStep.UNEXPECTED,
                completed_steps=list(run.completed),
            )

    async def _run(self, request: ProvisioningRequest, run: _Run) -> ProvisioningResult:
        role = Role(request.role)
        profile = PROFILE_BUILDERS[role](request, self)

        try:
            identity_id = await self.auth.create_credential(
                request.email,
                request.password,
                True,
                {"name": request.name, "role": role.value},
            )
        except StoreError as e:
            return self._failed(ProvisioningStep.IDENTITY, role, e, run)
        run.identity_id = identity_id
        run.completed.append(ProvisioningStep.IDENTITY)

        writes = [
            (ProvisioningStep.USER_RECORD, "users", {
                "id": identity_id,
                "email": request.email,
                "name": request.name,
                "phone": request.phone,
                "role": role.value,
                "email_confirm": True,
            }),
            (ProvisioningStep.LEDGER_ACCOUNT, "accounts", {
                "user_id": identity_id,
                "account_type": role.value,
                "balance": Decimal("0.00"),
            }),
            (ProvisioningStep.PREFERENCES, "user_preferences", UserPreferences(user_id=identity_id).model_dump()),
        ]
        if profile is not None:
            writes.append((ProvisioningStep.ROLE_PROFILE, profile.collection, profile.to_record(identity_id)))

        for step, collection, fields in writes:
            try:
                await self.store.create_record(collection, fields)
            except StoreError as e:
                return self._failed(step, role, e, run)
            run.completed.append(step)

        invalidated = self._invalidate()
        logger.info("Provisioned %s identity %s", role.value, identity_id)
        return ProvisioningResult(
            success=True,
            message=messages.CREATED,
            identity_id=identity_id,
            completed_steps=list(run.completed),
            invalidated=invalidated,
        )

    def _failed(
        self,
        step: ProvisioningStep,
        role: Role,
        error: StoreError,
        run: _Run,
    ) -> ProvisioningResult:
        logger.error(
            "Provisioning step %s failed for identity %s: %s (left behind: %s)",
            step.value, run.identity_id, error.message, [s.value for s in run.completed] or "nothing",
        )
        return ProvisioningResult(
            success=False,
            message=messages.step_failure(step, role, error.message),
            identity_id=run.identity_id,
            error=error.message,
            failed_step=step,
            completed_steps=list(run.completed),
        )

    def _invalidate(self) -> list[str]:
        listings = list(INVALIDATED_LISTINGS)
        if self.on_invalidate is None:
            return listings
        try:
            self.on_invalidate(listings)
        except Exception:
            logger.exception("Listing invalidation failed for %s", listings)
        return listings
