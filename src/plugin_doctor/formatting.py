"""Human-readable sizes, durations and timestamps."""

from datetime import datetime

_BYTE_UNITS = (
    ("TB", 1024**4),
    ("GB", 1024**3),
    ("MB", 1024**2),
    ("KB", 1024),
)


def format_bytes(size: float, decimals: int = 0) -> str:
    """``10485760`` -> ``"10 MB"``; ``1536, decimals=2`` -> ``"1.50 KB"``."""
    if size <= 0:
        return "0 B"
    for unit, factor in _BYTE_UNITS:
        if size >= factor:
            return f"{size / factor:,.{decimals}f} {unit}"
    return f"{size:,.{decimals}f} B"


def format_seconds(seconds: float) -> str:
    return f"{seconds:.2f} s"


TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Inverse of :func:`format_timestamp`. Raises ValueError on malformed input."""
    return datetime.strptime(value, TIMESTAMP_FORMAT)
