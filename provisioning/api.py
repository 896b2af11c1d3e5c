from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from .models import ProvisioningRequest, ProvisioningResult, ProvisioningStep, Role, UserPreferences
from .onboarding import OnboardingError, OnboardingService
from .service import ProvisioningSequencer

router = APIRouter(tags=["Accounts"])


def get_sequencer(request: Request) -> ProvisioningSequencer:
    return request.app.state.provisioning


def get_onboarding(request: Request) -> OnboardingService:
    return request.app.state.onboarding


@router.post("/admin/users", response_model=ProvisioningResult, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: ProvisioningRequest,
    response: Response,
    sequencer: ProvisioningSequencer = Depends(get_sequencer),
) -> ProvisioningResult:
    result = await sequencer.provision_identity(payload)
    if result.failed_step == ProvisioningStep.VALIDATION:
        response.status_code = status.HTTP_400_BAD_REQUEST
    elif not result.success:
        response.status_code = status.HTTP_502_BAD_GATEWAY
    return result


@router.get("/users/{user_id}/preferences", response_model=UserPreferences)
async def get_preferences(
    user_id: str,
    onboarding: OnboardingService = Depends(get_onboarding),
) -> UserPreferences:
    try:
        preferences = await onboarding.get_preferences(user_id)
    except OnboardingError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    if preferences is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Preferences for {user_id} not found")
    return preferences


@router.post("/users/{user_id}/tour", status_code=status.HTTP_204_NO_CONTENT)
async def complete_tour(user_id: str, onboarding: OnboardingService = Depends(get_onboarding)) -> None:
    try:
        await onboarding.complete_tour(user_id)
    except OnboardingError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.post("/users/{user_id}/welcome", status_code=status.HTTP_204_NO_CONTENT)
async def mark_welcome_seen(
    user_id: str,
    role: Role,
    onboarding: OnboardingService = Depends(get_onboarding),
) -> None:
    if role not in (Role.RESTAURANT, Role.DELIVERY_AGENT):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"No welcome screen for role {role.value}")
    try:
        await onboarding.mark_welcome_seen(user_id, role)
    except OnboardingError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
