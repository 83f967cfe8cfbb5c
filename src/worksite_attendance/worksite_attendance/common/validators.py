from __future__ import annotations

import math
import re
from typing import Any, Optional

from ..core.exceptions import ValidationError

_MOBILE_RE = re.compile(r"^\d{10,15}$")


def require_non_empty(value: Any, field_name: str) -> str:
    # JSON bodies may carry numbers; anything else that is not text is rejected
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        message = f"{field_name} must be a string"
        raise ValidationError(message, {field_name: message})
    if not value.strip():
        raise ValidationError(f"{field_name} is required", {field_name: f"{field_name} is required"})
    return value.strip()


def require_min_length(value: Any, field_name: str, min_len: int) -> str:
    if not isinstance(value, str) or len(value) < min_len:
        message = f"{field_name} must be at least {min_len} characters long"
        raise ValidationError(message, {field_name: message})
    return value


def require_mobile_number(value: str, field_name: str = "mobile_number") -> str:
    if not _MOBILE_RE.match(value or ""):
        raise ValidationError("Invalid mobile number format", {field_name: "Invalid mobile number format"})
    return value


def parse_float(value: Any) -> Optional[float]:
    """Lenient float parse; None for missing/blank/non-numeric input."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def coordinate_errors(latitude: Optional[float], longitude: Optional[float]) -> dict[str, str]:
    errors: dict[str, str] = {}
    if latitude is None or not -90 <= latitude <= 90:
        errors["lat"] = "Latitude must be between -90 and 90"
    if longitude is None or not -180 <= longitude <= 180:
        errors["lng"] = "Longitude must be between -180 and 180"
    return errors


def require_coordinates(latitude: Optional[float], longitude: Optional[float]) -> None:
    errors = coordinate_errors(latitude, longitude)
    if errors:
        raise ValidationError("Invalid coordinates", errors)
