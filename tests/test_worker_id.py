import socket
from collections import namedtuple

import pytest

from flakeid.core.exceptions import WorkerIdError
from flakeid.utils import worker_id
from flakeid.utils.worker_id import default_worker_id, fixed_worker_id

Address = namedtuple("Address", ["family", "address", "netmask", "broadcast", "ptp"])


def _ipv4(address: str) -> Address:
    return Address(socket.AF_INET, address, "255.255.255.0", None, None)


def _ipv6(address: str) -> Address:
    return Address(socket.AF_INET6, address, None, None, None)


@pytest.fixture()
def interfaces(monkeypatch: pytest.MonkeyPatch):
    def install(table: dict) -> None:
        monkeypatch.setattr(worker_id.psutil, "net_if_addrs", lambda: table)

    return install


def test_uses_last_two_octets(interfaces) -> None:
    interfaces({"eth0": [_ipv4("192.168.1.10")]})

    assert default_worker_id() == (1 << 8) + 10


def test_masks_to_twelve_bits(interfaces) -> None:
    interfaces({"eth0": [_ipv4("10.0.18.52")]})

    assert default_worker_id() == ((18 << 8) + 52) & 0x0FFF
    assert default_worker_id() == 564


def test_skips_loopback_and_ipv6(interfaces) -> None:
    interfaces(
        {
            "lo": [_ipv4("127.0.0.1"), _ipv6("::1")],
            "eth0": [_ipv6("fe80::1"), _ipv4("172.16.3.4")],
            "eth1": [_ipv4("172.16.9.9")],
        }
    )

    assert default_worker_id() == (3 << 8) + 4


def test_no_ipv4_address(interfaces) -> None:
    interfaces({"lo": [_ipv4("127.0.0.1")], "eth0": [_ipv6("fe80::1")]})

    with pytest.raises(WorkerIdError, match="No non-loopback IPv4 address"):
        default_worker_id()


def test_enumeration_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken():
        raise PermissionError("denied")

    monkeypatch.setattr(worker_id.psutil, "net_if_addrs", broken)

    with pytest.raises(WorkerIdError) as excinfo:
        default_worker_id()

    assert isinstance(excinfo.value.__cause__, PermissionError)


def test_fixed_worker_id() -> None:
    source = fixed_worker_id(42)

    assert source() == 42
    assert source() == 42
