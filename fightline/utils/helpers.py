from typing import Optional

# =========================
# Utility Functions
# =========================

def format_offset(ms: Optional[int]) -> str:
    """Format a fight offset in milliseconds as ``m:ss.mmm``."""
    if ms is None:
        return ""
    sign = "-" if ms < 0 else ""
    ms = abs(int(ms))
    minutes, rest = divmod(ms, 60000)
    seconds, millis = divmod(rest, 1000)
    return f"{sign}{minutes}:{seconds:02d}.{millis:03d}"


def seconds_to_ms(seconds: Optional[float]) -> int:
    """Convert a duration in (possibly fractional) seconds to milliseconds."""
    if not seconds:
        return 0
    return int(round(float(seconds) * 1000))
