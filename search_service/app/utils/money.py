def from_cents(cents: int) -> str:
    """Format integer cents as a two-decimal major-unit string"""
    sign = "-" if cents < 0 else ""
    whole, fraction = divmod(abs(cents), 100)
    return f"{sign}{whole}.{fraction:02d}"
