def format_money(amount) -> str:
    """USD with no cents: 500000 -> "$500,000". Missing prices render empty."""
    if amount is None:
        return ""
    return f"${amount:,.0f}"


def short_id(value, length: int = 8) -> str:
    """Leading characters of an id, for list labels ("Thread: 3f2a9c1b…")."""
    return str(value)[:length]
