"""Header parsing utilities for URL shortener."""

import ipaddress
from typing import Mapping, Optional, Union

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


def extract_real_ip(headers: Mapping[str, str]) -> Optional[str]:
    """Client address as reported by the proxy in X-Real-IP."""
    for k, v in headers.items():
        if k.lower() == "x-real-ip" and v:
            return v.strip()
    return None


def parse_trusted_subnet(cidr: Optional[str]) -> Optional[IPNetwork]:
    """Parse a CIDR string. Empty or None means no trusted subnet.

    Raises:
        ValueError: If cidr is not a valid network
    """
    if not cidr:
        return None
    return ipaddress.ip_network(cidr.strip(), strict=False)


def is_trusted_ip(ip: Optional[str], subnet: Optional[IPNetwork]) -> bool:
    """Check that ip belongs to subnet. Any client passes when no subnet is set."""
    if subnet is None:
        return True
    if not ip:
        return False
    try:
        return ipaddress.ip_address(ip) in subnet
    except ValueError:
        return False
