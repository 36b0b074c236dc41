"""Jinja2 filters for note timestamps."""
from datetime import datetime
from typing import Optional


def format_date(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d")


def format_time(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.strftime("%H:%M:%S")
