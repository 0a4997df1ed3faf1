def mask_value(value: str) -> str:
    """Mask emails and codes before they reach free-text logs.

    ``jane@example.com`` -> ``ja***@example.com``; long codes keep their first
    and last four characters; anything shorter is fully hidden.
    """
    if not isinstance(value, str):
        return value
    if "@" in value:  # email
        name, _, domain = value.partition("@")
        return (name[:2] + "***@" + domain) if name else "***@" + domain
    if len(value) > 12:
        return value[:4] + "..." + value[-4:]
    return "***"

