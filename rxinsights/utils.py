"""Utility helpers used across ``rxinsights`` modules."""

import traceback
from datetime import date, time
from typing import Any


def qualified_type_name(e: BaseException) -> str:
    """Return the exception type name, module-qualified unless it is a builtin."""
    cls = type(e)
    if cls.__module__ in ("builtins", "__main__"):
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def get_short_error_info(e: BaseException) -> str:
    """
    Get a short error information from an exception.

    Args:
        e (BaseException): The exception to get the error information from.

    Returns:
        str: ``"<type name>: <message>"``.
    """
    return f"{qualified_type_name(e)}: {safe_str(e)}"


# the function to get the full error information from an exception.
def get_full_error_info(e: BaseException) -> str:
    """
    Get the full error information from an exception.

    Args:
        e (BaseException): The exception to get the error information from.

    Returns:
        str: The full error information.
    """
    return "".join(traceback.format_exception(type(e), e, e.__traceback__))


def safe_str(value: Any) -> str:
    """
    Convert a property value to text without ever raising.

    ``None`` becomes ``""``, dates and times use ISO-8601, everything else goes
    through ``str``. A value whose conversion raises becomes ``""``.
    """
    try:
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        if isinstance(value, (date, time)):
            return value.isoformat()
        return str(value)
    except Exception:
        return ""
