# sitefiles/core/engines/helpers.py
"""
Built-in Handlebars helper functions.

pybars passes the current `this` context as the first argument to every
helper; the helpers here ignore it.
"""
import datetime
from typing import Any

def add_helper(*args: Any) -> float:
    """Sums numeric arguments. Ignores non-numeric ones."""
    numeric_args = args[1:]
    return sum(float(val) for val in numeric_args if isinstance(val, (int, float)) or (isinstance(val, str) and val.replace('.', '', 1).isdigit()))

def now_utc_iso_helper(*args: Any) -> str:
    """Current UTC timestamp in ISO 8601 format."""
    return datetime.datetime.now(datetime.timezone.utc).isoformat()

def upper_helper(_this: Any, value: Any = "") -> str:
    return str(value).upper()

def lower_helper(_this: Any, value: Any = "") -> str:
    return str(value).lower()

BUILTIN_HELPERS = {
    "add": add_helper,
    "now": now_utc_iso_helper,
    "upper": upper_helper,
    "lower": lower_helper,
}
