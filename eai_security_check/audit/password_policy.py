"""
Password strength and age validation against a PasswordPolicyConfig.
"""

import re
from typing import Optional, Tuple

from ..core.config import PasswordPolicyConfig

SPECIAL_CHARACTERS = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?~`]")


def validate_password_strength(
    password: Optional[str], policy: PasswordPolicyConfig
) -> Tuple[bool, str]:
    """Check a password against the policy's length and character class rules."""
    if not password:
        return False, "Password is required but not provided"

    if len(password) < policy.min_length:
        return False, f"Password must be at least {policy.min_length} characters long"

    missing = []
    if policy.require_uppercase and not re.search(r"[A-Z]", password):
        missing.append("uppercase letter")
    if policy.require_lowercase and not re.search(r"[a-z]", password):
        missing.append("lowercase letter")
    if policy.require_number and not re.search(r"\d", password):
        missing.append("number")
    if policy.require_special_char and not SPECIAL_CHARACTERS.search(password):
        missing.append("special character")

    if missing:
        return False, f"Password must contain at least one: {', '.join(missing)}"
    return True, "Password meets security requirements"


def validate_password_age(
    age_days: Optional[int], policy: PasswordPolicyConfig
) -> Tuple[bool, str]:
    """An unknown age is treated as compliant."""
    if age_days is None:
        return True, "Password age could not be determined - assuming compliant"
    if age_days > policy.max_age_days:
        return (
            False,
            f"Password is {age_days} days old (maximum allowed: {policy.max_age_days} days)",
        )
    return (
        True,
        f"Password is {age_days} days old (within {policy.max_age_days} day limit)",
    )
