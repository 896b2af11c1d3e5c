"""
Account provisioning for the marketplace

Provides the sequencer that creates a platform identity (credential, user
row, ledger account, preferences, role profile) as ordered remote writes,
and the onboarding flags kept in user preferences.
"""

from .models import (
    Role,
    ProvisioningStep,
    ProvisioningRequest,
    ProvisioningResult,
    RestaurantProfile,
    DeliveryAgentProfile,
    ClientProfile,
    UserPreferences,
)
from .onboarding import OnboardingError, OnboardingService
from .service import INVALIDATED_LISTINGS, ProvisioningSequencer, validate_request

__all__ = [
    "Role",
    "ProvisioningStep",
    "ProvisioningRequest",
    "ProvisioningResult",
    "RestaurantProfile",
    "DeliveryAgentProfile",
    "ClientProfile",
    "UserPreferences",
    "OnboardingError",
    "OnboardingService",
    "INVALIDATED_LISTINGS",
    "ProvisioningSequencer",
    "validate_request",
]
