"""
Worker ID Sources

A worker ID source is any zero-argument callable returning the integer that
identifies this process inside the ID space. The generator calls it exactly
once, at construction, and lets whatever it raises propagate to the caller.

The default source derives the ID from the host's network configuration: the
last two octets of the first non-loopback IPv4 address, masked to 12 bits, so
hosts within one /20 never collide. Fleet-wide allocation (leases, Zookeeper, a
database counter) is plugged in with ``with_worker_id_source``.
"""

import ipaddress
import socket
from typing import Callable

import psutil

from flakeid.core.exceptions import WorkerIdError

WorkerIdSource = Callable[[], int]

WORKER_ID_MASK = 0x0FFF


def _first_ipv4_address() -> ipaddress.IPv4Address:
    try:
        interfaces = psutil.net_if_addrs()
    except OSError as e:
        raise WorkerIdError(f"Unable to enumerate network interfaces: {e}") from e

    for addresses in interfaces.values():
        for address in addresses:
            if address.family != socket.AF_INET:
                continue
            ip = ipaddress.IPv4Address(address.address)
            if not ip.is_loopback:
                return ip

    raise WorkerIdError("No non-loopback IPv4 address found")


def default_worker_id() -> int:
    """Derives a worker ID from the first non-loopback IPv4 address.

    Returns:
        ``((octet3 << 8) + octet4) & 0x0FFF``

    Raises:
        WorkerIdError: If interfaces cannot be listed or none carries IPv4.
    """
    octets = _first_ipv4_address().packed
    return ((octets[2] << 8) + octets[3]) & WORKER_ID_MASK


def fixed_worker_id(worker_id: int) -> WorkerIdSource:
    """Returns a source that always resolves to ``worker_id``."""

    def source() -> int:
        return worker_id

    return source
