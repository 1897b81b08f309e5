"""Repository reachability checks."""

import ipaddress
import re
import socket
import subprocess
import sys
import time
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urlsplit

import psutil
from tenacity import Retrying, retry_if_result, stop_after_attempt, wait_fixed

from ..util.logging import get_logger

logger = get_logger(__name__)

GENERIC_PROBE_HOST = "cloudflare.com"

# Backends whose URI carries no hostname; probe the provider instead
SCHEME_HOSTS = {
    "swift:": GENERIC_PROBE_HOST,
    "rclone:": GENERIC_PROBE_HOST,
    "b2:": "api.backblazeb2.com",
    "azure:": "azure.microsoft.com",
    "gs:": "storage.googleapis.com",
}

TRANSPORT_PREFIX = re.compile(r"^(s3|sftp|rest):")


class ConnectivityError(Exception):
    """The repository URI does not name a host that can be probed."""
    pass


def is_local_repository(repository: str) -> bool:
    """True if the repository is a filesystem path that exists."""
    path = repository[len("local:"):] if repository.startswith("local:") else repository
    try:
        return bool(path) and Path(path).exists()
    except OSError:
        return False


def repository_host(repository: str) -> str:
    """Derive the hostname to probe for a repository URI.

    Raises:
        ConnectivityError: If no hostname can be derived
    """
    for prefix, host in SCHEME_HOSTS.items():
        if repository.startswith(prefix):
            return host

    connection = TRANSPORT_PREFIX.sub("", repository, count=1)
    if "://" not in connection:
        connection = "https://" + connection

    try:
        host = urlsplit(connection).hostname
    except ValueError as e:
        raise ConnectivityError(f"Cannot parse repository URI '{repository}': {e}") from e

    if not host:
        raise ConnectivityError(f"No host found in repository URI '{repository}'")
    return host


def has_active_interface() -> bool:
    """Check for an interface that is up and carries a routable address."""
    addresses = psutil.net_if_addrs()

    for name, stats in psutil.net_if_stats().items():
        if not stats.isup:
            continue
        for addr in addresses.get(name, []):
            if addr.family not in (socket.AF_INET, socket.AF_INET6):
                continue
            try:
                ip = ipaddress.ip_address(addr.address.split("%")[0])
            except ValueError:
                continue
            if not (ip.is_loopback or ip.is_link_local):
                return True

    return False


def ping_host(host: str, timeout: int = 2) -> bool:
    """Send a single ICMP echo request using the system ping binary."""
    if sys.platform == "win32":
        cmd = ["ping", "-n", "1", "-w", str(timeout * 1000), host]
    else:
        cmd = ["ping", "-c", "1", "-W", str(timeout), host]

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout + 5)
        return result.returncode == 0
    except (subprocess.TimeoutExpired, FileNotFoundError) as e:
        logger.debug(f"ping {host} failed: {e}")
        return False


class ConnectivityGate:
    """Decides whether the repository can be reached before doing any work."""

    def __init__(
        self,
        wait_seconds: float = 5,
        has_network: Callable[[], bool] = has_active_interface,
        probe: Callable[[str], bool] = ping_host,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.wait_seconds = wait_seconds
        self.has_network = has_network
        self.probe = probe
        self.sleep = sleep

    def _poll(self, host: str) -> bool:
        if not self.has_network():
            logger.warning("No active network interface, waiting")
            return False
        if not self.probe(host):
            logger.warning(f"{host} is not reachable yet, waiting")
            return False
        return True

    def is_ready(self, repository: Optional[str], max_attempts: int) -> bool:
        """Return True once the repository host answers, polling up to ``max_attempts`` times."""
        if max_attempts <= 0:
            return True

        if repository and is_local_repository(repository):
            logger.debug(f"Repository {repository} is a local path")
            return True

        try:
            host = repository_host(repository or "")
        except ConnectivityError as e:
            logger.error(str(e))
            return False

        retrying = Retrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_fixed(self.wait_seconds),
            retry=retry_if_result(lambda ready: not ready),
            retry_error_callback=lambda retry_state: False,
            sleep=self.sleep,
        )
        ready = retrying(self._poll, host)

        if ready:
            logger.info(f"Connectivity to {host} confirmed")
        else:
            logger.warning(f"{host} unreachable after {max_attempts} attempts")
        return ready
