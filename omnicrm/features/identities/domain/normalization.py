"""
Normalization rules for contact identifiers.

Every function here is idempotent: feeding a normalized value back in
returns it unchanged, so stored values can be re-normalized safely.
"""

import re

from omnicrm.config import settings
from omnicrm.core.errors import ValidationError
from omnicrm.features.identities.domain.models import IdentityKind, check_provider

MIN_PHONE_DIGITS = 7

_NON_DIGITS = re.compile(r"\D")


def normalize_email(raw: str | None) -> str:
    email = (raw or "").strip().lower()
    if not email:
        raise ValidationError("email is empty", field="email")

    local, sep, domain = email.partition("@")
    if not sep or not local or not domain or "@" in domain:
        raise ValidationError(
            "email must contain one '@' between a local part and a domain", field="email"
        )

    return email


def normalize_phone(raw: str | None, default_country_code: str | None = None) -> str:
    """
    Canonical phone form.

    - Numbers written with a leading '+' keep their country code: "+<digits>".
    - Ten-digit numbers in the default country code "1" plan get "+1" prepended.
    - Numbers that already start with the default country code and have
      eleven digits become "+<digits>".
    - Anything else (short local numbers, unknown plans) stays bare digits.

    "+1-555-123-4567", "(555) 123-4567", "555.123.4567" and "5551234567"
    all become "+15551234567".
    """
    country_code = default_country_code or settings.PHONE_DEFAULT_COUNTRY_CODE
    phone = (raw or "").strip()
    digits = _NON_DIGITS.sub("", phone)

    if len(digits) < MIN_PHONE_DIGITS:
        raise ValidationError(
            f"phone must contain at least {MIN_PHONE_DIGITS} digits", field="phone"
        )

    if phone.startswith("+"):
        return f"+{digits}"
    if country_code == "1" and len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 10 + len(country_code) and digits.startswith(country_code):
        return f"+{digits}"
    return digits


def normalize_handle(raw: str | None) -> str:
    handle = (raw or "").strip().lower()
    if not handle:
        raise ValidationError("handle is empty", field="handle")
    return handle


def normalize_provider_id(raw: str | None) -> str:
    # Provider ids are opaque tokens and are stored verbatim
    if not raw:
        raise ValidationError("provider_id is empty", field="provider_id")
    return raw


_NORMALIZERS = {
    IdentityKind.EMAIL: normalize_email,
    IdentityKind.PHONE: normalize_phone,
    IdentityKind.HANDLE: normalize_handle,
    IdentityKind.PROVIDER_ID: normalize_provider_id,
}


def normalize_identity(kind: IdentityKind, raw: str | None, provider: str | None = None) -> str:
    """Validate the provider for `kind` and return the normalized value."""
    check_provider(kind, provider)
    return _NORMALIZERS[kind](raw)
