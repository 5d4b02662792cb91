"""
Reusable validation rules for users, commanders and games.

Each helper either returns a normalized value or raises ``ValueError`` so it
can be used directly inside pydantic validators.
"""
import re
from datetime import date, timedelta
from typing import Iterable, List, Optional

COLOR_ORDER = "WUBRG"
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
RESERVED_USERNAMES = {"admin", "root", "system", "test", "api", "support"}
DISPOSABLE_EMAIL_DOMAINS = {
    "tempmail.com",
    "10minutemail.com",
    "guerrillamail.com",
    "mailinator.com",
    "temp-mail.org",
    "throwaway.email",
}
SPECIAL_CHARS = set("!@#$%^&*()_+=-[]{};:'\",.<>?/")
REPEATED_CHAR_PATTERN = re.compile(r"^(.)\1{20,}$", re.DOTALL)
MAX_NOTES_LENGTH = 1000


def normalize_username(username: str) -> str:
    """Trim, check the alphabet and reserved names, and lower-case."""
    value = (username or "").strip()
    if len(value) < 3 or len(value) > 50:
        raise ValueError("Username must be between 3 and 50 characters")
    if not USERNAME_PATTERN.match(value):
        raise ValueError("Username can only contain letters, numbers, underscores, and hyphens")
    value = value.lower()
    if value in RESERVED_USERNAMES:
        raise ValueError("Username is reserved")
    return value


def password_strength_errors(password: str) -> List[str]:
    """Return every strength rule the password breaks."""
    errors = []
    if len(password) < 8:
        errors.append("Password must be at least 8 characters")
    if len(password) > 100:
        errors.append("Password must be less than 100 characters")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    return errors


def check_password_strength(password: str) -> str:
    errors = password_strength_errors(password)
    if errors:
        raise ValueError("; ".join(errors))
    return password


def normalize_email(email: Optional[str]) -> Optional[str]:
    if email is None:
        return None
    value = str(email).strip().lower()
    domain = value.rsplit("@", 1)[-1]
    if domain in DISPOSABLE_EMAIL_DOMAINS:
        raise ValueError("Disposable email addresses are not allowed")
    return value


def normalize_colors(colors: Iterable[str]) -> List[str]:
    """Validate a color identity and return it in canonical WUBRG order."""
    symbols = [str(c).strip().upper() for c in colors]
    if not 1 <= len(symbols) <= 5:
        raise ValueError("Color identity must contain between 1 and 5 colors")
    invalid = [s for s in symbols if s not in COLOR_ORDER or len(s) != 1]
    if invalid:
        raise ValueError(f"Invalid color symbols: {', '.join(invalid)}")
    if len(set(symbols)) != len(symbols):
        raise ValueError("Color identity cannot contain duplicate colors")
    return sorted(symbols, key=COLOR_ORDER.index)


def color_key(colors: Iterable[str]) -> str:
    """Canonical label for an exact color identity, e.g. ``["B", "U"] -> "UB"``."""
    present = set(colors)
    return "".join(c for c in COLOR_ORDER if c in present)


def one_year_before(day: date) -> date:
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        # Feb 29th
        return day - timedelta(days=365)


def check_game_date(value: date, today: Optional[date] = None) -> date:
    """Games cannot be in the future or more than one year old."""
    today = today or date.today()
    if value > today:
        raise ValueError("Game date cannot be in the future")
    if value < one_year_before(today):
        raise ValueError("Game date cannot be more than one year old")
    return value


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """Trim, collapse runs of whitespace and cap the length."""
    if not value:
        return None
    cleaned = re.sub(r"\s+", " ", value.strip())
    return cleaned[:MAX_NOTES_LENGTH] or None


def is_not_spam(text: Optional[str]) -> bool:
    if not text:
        return True
    if REPEATED_CHAR_PATTERN.match(text):
        return False
    special = sum(1 for ch in text if ch in SPECIAL_CHARS)
    return special / len(text) <= 0.8


def check_notes(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if len(value) > MAX_NOTES_LENGTH:
        raise ValueError(f"Notes must be at most {MAX_NOTES_LENGTH} characters")
    if not is_not_spam(value):
        raise ValueError("Notes look like spam")
    return sanitize_string(value)
