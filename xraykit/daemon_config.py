"""Resolution of the X-Ray daemon's UDP and TCP endpoints.

An address may be given as ``host:port`` (both protocols on one address) or as
``tcp:host:port udp:host:port`` in either order. The environment variable
``AWS_XRAY_DAEMON_ADDRESS`` takes precedence over any address passed in. The
default is ``127.0.0.1:2000`` for both protocols.
"""

import os
import re
import socket
from dataclasses import dataclass
from typing import Optional

from xraykit import logger

__all__ = [
    "ENV_DAEMON_ADDRESS",
    "DaemonConfigError",
    "Endpoint",
    "DaemonEndpoints",
    "get_daemon_endpoints",
    "get_daemon_endpoints_from_env",
    "get_default_daemon_endpoints",
    "get_daemon_endpoints_from_string",
    "resolve_endpoint",
]

ENV_DAEMON_ADDRESS = "AWS_XRAY_DAEMON_ADDRESS"

_ADDRESS_DELIMITER = " "
_UDP_KEY = "udp"
_TCP_KEY = "tcp"
_PORT_RE = re.compile(r"[+-]?[0-9]+")


class DaemonConfigError(ValueError):
    """Raised when a daemon address cannot be parsed or resolved."""


@dataclass(frozen=True)
class Endpoint:
    """A resolved IP address and port."""

    host: str
    port: int

    def __str__(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"


@dataclass(frozen=True)
class DaemonEndpoints:
    """UDP endpoint for emitted segments and TCP endpoint for sampling calls."""

    udp_addr: Endpoint
    tcp_addr: Endpoint


def _valid_port(text: str) -> bool:
    return _PORT_RE.fullmatch(text) is not None


def resolve_endpoint(address: str) -> Endpoint:
    """Resolve ``host:port`` to an IP address, preferring IPv4."""
    host, sep, port_text = address.rpartition(":")
    if not sep:
        raise DaemonConfigError(f"address {address}: missing port in address")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    if not _valid_port(port_text):
        raise DaemonConfigError(f"address {address}: invalid port")
    port = int(port_text)
    if not 0 <= port <= 65535:
        raise DaemonConfigError(f"address {address}: invalid port")
    if not host:
        return Endpoint("", port)
    try:
        infos = socket.getaddrinfo(host, port, type=socket.SOCK_DGRAM)
    except (socket.gaierror, UnicodeError) as exc:
        raise DaemonConfigError(f"lookup {host}: {exc}") from exc
    if not infos:
        raise DaemonConfigError(f"lookup {host}: no such host")
    chosen = next((info for info in infos if info[0] == socket.AF_INET), infos[0])
    return Endpoint(chosen[4][0], port)


def get_default_daemon_endpoints() -> DaemonEndpoints:
    """Return the default endpoints: 127.0.0.1:2000 for UDP and TCP."""
    return DaemonEndpoints(Endpoint("127.0.0.1", 2000), Endpoint("127.0.0.1", 2000))


def get_daemon_endpoints() -> DaemonEndpoints:
    """Return endpoints from the environment, or the defaults if it is unset.

    Raises DaemonConfigError if the environment variable is invalid.
    """
    endpoints = get_daemon_endpoints_from_string("")
    return endpoints if endpoints is not None else get_default_daemon_endpoints()


def get_daemon_endpoints_from_env() -> Optional[DaemonEndpoints]:
    """Resolve the address in the environment variable, or return None if unset."""
    address = os.environ.get(ENV_DAEMON_ADDRESS, "")
    if address:
        return _resolve_address(address)
    return None


def get_daemon_endpoints_from_string(address: str) -> Optional[DaemonEndpoints]:
    """Resolve the environment variable if set, else ``address``.

    Returns None when neither gives an address.
    """
    env_address = os.environ.get(ENV_DAEMON_ADDRESS, "")
    if env_address:
        logger.infof(
            "using daemon endpoints from environment variable %s: %s",
            ENV_DAEMON_ADDRESS,
            env_address,
        )
        address = env_address
    if address:
        return _resolve_address(address)
    return None


def _resolve_address(address: str) -> DaemonEndpoints:
    parts = address.split(_ADDRESS_DELIMITER)
    if len(parts) == 1:
        return _parse_single_form(parts[0])
    if len(parts) == 2:
        return _parse_double_form(parts[0], parts[1])
    raise DaemonConfigError("invalid daemon address: " + address)


def _parse_double_form(first: str, second: str) -> DaemonEndpoints:
    fields1 = first.split(":")
    fields2 = second.split(":")
    if len(fields1) != 3 or len(fields2) != 3:
        raise DaemonConfigError(f"invalid daemon address: {first} {second}")
    if not (_valid_port(fields1[2]) and _valid_port(fields2[2])):
        raise DaemonConfigError("invalid daemon address port")

    addresses = {
        fields1[0]: f"{fields1[1]}:{fields1[2]}",
        fields2[0]: f"{fields2[1]}:{fields2[2]}",
    }
    udp = addresses.get(_UDP_KEY)
    tcp = addresses.get(_TCP_KEY)
    if not udp or not tcp:
        raise DaemonConfigError("invalid daemon address")

    return DaemonEndpoints(resolve_endpoint(udp), resolve_endpoint(tcp))


def _parse_single_form(address: str) -> DaemonEndpoints:
    fields_ = address.split(":")
    if len(fields_) != 2:
        raise DaemonConfigError("invalid daemon address: " + address)
    if not _valid_port(fields_[1]):
        raise DaemonConfigError("invalid daemon address port")
    udp = resolve_endpoint(address)
    tcp = resolve_endpoint(address)
    return DaemonEndpoints(udp, tcp)