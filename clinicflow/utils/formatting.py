"""Formatting helpers for durations and currency."""


def format_duration(seconds: int) -> str:
    """Format seconds as MM:SS. Minutes are not wrapped at 60."""
    seconds = max(0, int(seconds))
    minutes, secs = divmod(seconds, 60)
    return f"{minutes:02d}:{secs:02d}"


def format_currency(amount: float, symbol: str = "₹") -> str:
    """Plain numeric units with two-decimal formatting."""
    return f"{symbol}{amount:.2f}"
