"""Project code normalization.

Project codes are stored as MY-XXX-YYYY: three zero-padded digits and a
four-digit year.
"""

from datetime import date
from typing import Optional

from supplier_eval.constants import PROJECT_CODE_PREFIX


def _digits(value: str) -> str:
    return "".join(ch for ch in value if ch.isdigit())


def normalize_project_code(code: Optional[str], current_year: Optional[int] = None) -> Optional[str]:
    """
    Normalize a project code to MY-XXX-YYYY.

    - "MY-7-2024" -> "MY-007-2024"
    - "MY-012" -> "MY-012-<current year>"
    - "0122025" -> "MY-012-2025"
    - fewer than 3 digits without the prefix -> None

    Args:
        code: Raw project code as typed
        current_year: Year used when the code has none (defaults to today's year)

    Returns:
        Normalized code, the original text when it has the prefix but no usable number, or None
    """
    if not code or not code.strip():
        return None
    code = code.strip()
    year_fallback = str(current_year or date.today().year)

    if code.startswith(PROJECT_CODE_PREFIX):
        parts = code[len(PROJECT_CODE_PREFIX) :].split("-")
        digits = _digits(parts[0])
        numbers = digits.zfill(3)[:3] if digits else ""
        year = _digits(parts[1])[:4] if len(parts) > 1 else ""
        if len(numbers) == 3 and len(year) == 4:
            return f"{PROJECT_CODE_PREFIX}{numbers}-{year}"
        if len(numbers) == 3:
            return f"{PROJECT_CODE_PREFIX}{numbers}-{year_fallback}"
        return code if len(code) > len(PROJECT_CODE_PREFIX) else None

    only_digits = _digits(code)
    if len(only_digits) < 3:
        return None
    numbers = only_digits[:3]
    year = only_digits[3:7]
    return f"{PROJECT_CODE_PREFIX}{numbers}-{year if len(year) == 4 else year_fallback}"
