"""Client metadata normalisation for audit columns."""

import ipaddress

MAX_IP_LENGTH = 45  # width of the ip_address columns


def clean_ip_address(raw: str | None) -> str:
    """
    Reduce a raw client address to the originating IP.

    Callers often pass the X-Forwarded-For value as-is, which may contain a
    chain: "client, proxy1, proxy2". The first entry is the original client.
    Anything that does not parse as an address is stored as "unknown".
    """
    if not raw:
        return "unknown"

    first = raw.split(",")[0].strip()
    try:
        addr = str(ipaddress.ip_address(first))
    except ValueError:
        return "unknown"

    # Scoped IPv6 zone ids are unbounded
    if len(addr) > MAX_IP_LENGTH:
        return "unknown"
    return addr


def clean_user_agent(raw: str | None, max_length: int = 512) -> str:
    if not raw:
        return ""
    return raw.strip()[:max_length]
