"""Display helpers for marketplace values."""

from typing import Optional

MB_PER_GB = 1024
MB_PER_TB = 1024 * 1024


def format_ram(ram_mb: float) -> str:
    """Format a size in MB as MB, GB or TB."""
    if ram_mb >= MB_PER_TB:
        return f"{ram_mb / MB_PER_TB:.2f} TB"
    if ram_mb >= MB_PER_GB:
        return f"{ram_mb / MB_PER_GB:.2f} GB"
    return f"{ram_mb:g} MB"


def format_price(dollars: float, period: Optional[str] = None) -> str:
    """Format a dollar price, optionally with its billing period."""
    if period:
        return f"${dollars:.2f} per {period}"
    return f"${dollars:.2f}"
