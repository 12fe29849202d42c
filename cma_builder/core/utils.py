import calendar
from urllib.parse import quote
from datetime import date, datetime, timezone

def utc_today() -> date:
    """Call-time date in UTC; listing dates are compared as UTC calendar days."""
    return datetime.now(timezone.utc).date()

def subtract_months(d: date, months: int) -> date:
    """
    Same day `months` calendar months earlier, clamped to the target month's
    last day (Mar 31 - 1 month -> Feb 28/29).
    """
    year = d.year + (d.month - months - 1) // 12
    month = (d.month - months - 1) % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(d.day, last_day))

def iso_day(d: date) -> str:
    return d.strftime("%Y-%m-%d")

def is_safe_return_path(path: str | None) -> bool:
    """Only same-site absolute paths may be used as post-login redirects."""
    if not path or not path.startswith("/"):
        return False
    if path.startswith("//") or path.startswith("/\\"):
        return False
    return "://" not in path and "\n" not in path and "\r" not in path

def append_query(path: str, key: str, value: str) -> str:
    """Add key=value to the query of `path`, keeping any #fragment last."""
    path, hash_, fragment = path.partition("#")
    sep = "&" if "?" in path else "?"
    return f"{path}{sep}{key}={quote(value, safe='')}{hash_}{fragment}"
