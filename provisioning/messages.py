"""User-facing (es-MX) messages for provisioning and onboarding results."""

from typing import Iterable, Optional

from .models import ProvisioningStep, Role

CREATED = "Usuario creado exitosamente"
MISSING_FIELDS = "Faltan campos requeridos"
MISSING_RESTAURANT_NAME = "Nombre del restaurante es requerido"
UNEXPECTED = "Error inesperado: "
UNKNOWN_ROLE = "Rol no válido"

STEP_FAILURES = {
    ProvisioningStep.IDENTITY: "Error al crear usuario en Auth: ",
    ProvisioningStep.USER_RECORD: "Error al crear registro de usuario: ",
    ProvisioningStep.LEDGER_ACCOUNT: "Error al crear cuenta: ",
    ProvisioningStep.PREFERENCES: "Error al crear preferencias: ",
}

PROFILE_FAILURES = {
    Role.RESTAURANT: "Error al crear restaurante: ",
    Role.DELIVERY_AGENT: "Error al crear repartidor: ",
    Role.CLIENT: "Error al crear cliente: ",
}

# (substring of the auth provider error, localized text)
AUTH_ERRORS = (
    ("user already registered", "Este correo electrónico ya está registrado."),
    ("already been registered", "Este correo electrónico ya está registrado."),
    ("invalid email", "El formato del correo electrónico no es válido."),
    ("password should be at least", "La contraseña debe tener al menos 6 caracteres."),
    ("duplicate key", "Este correo o teléfono ya está registrado."),
)


def missing_fields(fields: Iterable[str]) -> str:
    return f"{MISSING_FIELDS}: {', '.join(fields)}"


def localize_auth_error(raw: str) -> Optional[str]:
    lowered = raw.lower()
    for needle, text in AUTH_ERRORS:
        if needle in lowered:
            return text
    return None


def step_failure(step: ProvisioningStep, role: Role, raw: str) -> str:
    if step == ProvisioningStep.ROLE_PROFILE:
        prefix = PROFILE_FAILURES[role]
    else:
        prefix = STEP_FAILURES[step]
    if step == ProvisioningStep.IDENTITY:
        raw = localize_auth_error(raw) or raw
    return prefix + raw
