"""Field rules for users and items.

Each validate_* function returns a ValidationResult instead of raising, so
callers decide how a failed result is reported.
"""
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from email_validator import EmailNotValidError, validate_email

from errors import ValidationFailed

PASSWORD_MIN_LENGTH = 7
ITEM_UPDATABLE_FIELDS = frozenset({"name", "description", "category", "price"})


@dataclass
class ValidationResult:
    errors: Dict[str, str] = field(default_factory=dict)
    cleaned: Dict[str, Any] = field(default_factory=dict)
    message: str = "Invalid request"

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_error(self) -> ValidationFailed:
        return ValidationFailed(self.message, fields=self.errors)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def check_password(password: Any) -> ValidationResult:
    result = ValidationResult()
    if not isinstance(password, str) or not password.strip():
        result.errors["password"] = "Password is required"
        return result
    password = password.strip()
    if len(password) < PASSWORD_MIN_LENGTH:
        result.errors["password"] = f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
    elif "password" in password.lower():
        result.errors["password"] = 'Password cannot contain "password"'
    else:
        result.cleaned["password"] = password
    return result


def validate_registration(name: Any, email: Any, password: Any) -> ValidationResult:
    result = check_password(password)

    if not isinstance(name, str) or not name.strip():
        result.errors["name"] = "Name is required"
    else:
        result.cleaned["name"] = name.strip().lower()

    if not isinstance(email, str) or not email.strip():
        result.errors["email"] = "Email is required"
    else:
        try:
            validate_email(email.strip(), check_deliverability=False)
            result.cleaned["email"] = normalize_email(email)
        except EmailNotValidError:
            result.errors["email"] = "Email is invalid"
    return result


def _check_item_field(key: str, value: Any, result: ValidationResult) -> None:
    if key == "price":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            result.errors["price"] = "Price must be a number"
        elif not math.isfinite(value):
            result.errors["price"] = "Price must be a finite number"
        elif value < 0:
            result.errors["price"] = "Price must not be negative"
        else:
            result.cleaned["price"] = value
    elif key == "name":
        if not isinstance(value, str) or not value.strip():
            result.errors["name"] = "Name is required"
        else:
            result.cleaned["name"] = value.strip()
    else:
        if not isinstance(value, str):
            result.errors[key] = f"{key.capitalize()} must be a string"
        else:
            result.cleaned[key] = value


def validate_new_item(payload: Mapping[str, Any]) -> ValidationResult:
    result = ValidationResult(message="Error while adding item")
    for key in ("name", "price"):
        if payload.get(key) is None:
            result.errors[key] = f"{key.capitalize()} is required"
    for key in ITEM_UPDATABLE_FIELDS:
        if key in payload and key not in result.errors:
            _check_item_field(key, payload[key], result)
    result.cleaned.setdefault("description", "")
    result.cleaned.setdefault("category", "")
    return result


def validate_item_patch(patch: Mapping[str, Any]) -> ValidationResult:
    """The whole patch is rejected if any key is outside ITEM_UPDATABLE_FIELDS."""
    result = ValidationResult(message="Invalid updates")
    disallowed = set(patch) - ITEM_UPDATABLE_FIELDS
    if disallowed:
        for key in sorted(disallowed):
            result.errors[key] = "Field cannot be updated"
        return result
    for key, value in patch.items():
        _check_item_field(key, value, result)
    return result
