"""Form-level validation for the login and signup screens.

These rules run before anything reaches the credential repository, which
assumes non-empty, well-formed input. Each function returns a mapping of
field name to error message; an empty mapping means the form is valid.
"""
import re
from typing import Dict

from config import NAME_MIN_LENGTH, PASSWORD_MIN_LENGTH, PHONE_NUMBER_DIGITS
from models.entities import SignupForm

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
PHONE_PATTERN = re.compile(rf"[0-9]{{{PHONE_NUMBER_DIGITS}}}")


def _check_email(email: str, errors: Dict[str, str]) -> None:
    if not email:
        errors["email"] = "Email address is required"
    elif not EMAIL_PATTERN.fullmatch(email):
        errors["email"] = "Invalid email address"


def _check_password(password: str, errors: Dict[str, str]) -> None:
    if not password:
        errors["password"] = "Password is required"
    elif len(password) < PASSWORD_MIN_LENGTH:
        errors["password"] = f"Password must be at least {PASSWORD_MIN_LENGTH} characters"


def _check_name(field: str, label: str, value: str, errors: Dict[str, str]) -> None:
    if not value:
        errors[field] = f"{label} is required"
    elif len(value) < NAME_MIN_LENGTH:
        errors[field] = f"{label} must be at least {NAME_MIN_LENGTH} characters"


def validate_login_form(email: str, password: str) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    _check_email(email, errors)
    _check_password(password, errors)
    return errors


def validate_signup_form(form: SignupForm) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    _check_email(form.email, errors)
    _check_password(form.password, errors)

    if not form.confirm_password:
        errors["confirm_password"] = "Please confirm your password"
    elif form.confirm_password != form.password:
        errors["confirm_password"] = "Passwords must match"

    _check_name("first_name", "First name", form.first_name, errors)
    _check_name("last_name", "Last name", form.last_name, errors)

    if not form.phone_number:
        errors["phone_number"] = "Phone number is required"
    elif not PHONE_PATTERN.fullmatch(form.phone_number):
        errors["phone_number"] = f"Phone number must be {PHONE_NUMBER_DIGITS} digits"

    return errors
