"""
PII (Personally Identifiable Information) masking utilities.
"""
import re

UUID_RE = re.compile(r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$', re.I)
PHONE_RE = re.compile(r'^[\d\s\+\-\(\)]+$')

PII_FIELDS = {
    "email", "phone", "full_name", "name", "address", "user_id",
    "idempotency_key", "transaction_hash",
}


def mask_email(email: str) -> str:
    """Mask email address."""
    if "@" not in email:
        return email
    local, domain = email.split("@", 1)
    if len(local) <= 2:
        return f"**@{domain}"
    return f"{local[:2]}{'*' * (len(local) - 2)}@{domain}"


def mask_phone(phone: str) -> str:
    """Mask phone number."""
    if len(phone) <= 4:
        return "*" * len(phone)
    return phone[:2] + "*" * (len(phone) - 4) + phone[-2:]


def mask_uuid(uuid_str: str) -> str:
    """Mask UUID (show first 8 chars only)."""
    if len(uuid_str) < 8:
        return "*" * len(uuid_str)
    return uuid_str[:8] + "-****-****-****-************"


def mask_token(value: str) -> str:
    """Keep a short prefix of an opaque token."""
    if len(value) <= 8:
        return "*" * len(value)
    return value[:8] + "..."


def mask_value(key: str, value: str) -> str:
    if "@" in value:
        return mask_email(value)
    if UUID_RE.match(value):
        return mask_uuid(value)
    if PHONE_RE.match(value):
        return mask_phone(value)
    if key in ("name", "full_name", "address"):
        return value[0] + "*" * (len(value) - 1) if value else value
    return mask_token(value)


def mask_pii_in_dict(data: dict) -> dict:
    """Mask PII in dictionary recursively."""
    masked = {}
    for key, value in data.items():
        if isinstance(value, dict):
            masked[key] = mask_pii_in_dict(value)
        elif isinstance(value, list):
            masked[key] = [mask_pii_in_dict(item) if isinstance(item, dict) else item for item in value]
        elif key.lower() in PII_FIELDS and isinstance(value, str):
            masked[key] = mask_value(key.lower(), value)
        else:
            masked[key] = value
    return masked
