"""Built-in host environment probes.

These probes read ambient signals of the machine and interpreter that run
envprint. Low-priority synchronous probes (time zone, platform, locale, CPU,
memory, runtime) are cheap and stable, so they also feed the cache key.
Slower probes that touch the network stack or the filesystem are async and
carry a timeout group.
"""

from __future__ import annotations

import asyncio
import locale
import logging
import os
import platform
import shutil
import socket
import sys
import time
from typing import Any

import psutil

from envprint.hashing import simple_hash
from envprint.probes.base import FunctionProbe, Probe

logger = logging.getLogger(__name__)

# Internal probe name -> public component field name
BUILTIN_FIELD_NAMES: dict[str, str] = {
    "tz": "timezone",
    "lang": "language",
    "mem": "memory",
    "net_if": "network_interfaces",
    "outbound": "outbound_address",
    "env_keys": "environment",
}

# Documentation address (RFC 5737); connecting a UDP socket sends no packets
_ROUTE_PROBE_ADDRESS = ("192.0.2.1", 9)


def read_timezone() -> dict[str, Any]:
    """Return the local time zone name and UTC offset."""
    local = time.localtime()
    return {
        "name": time.tzname[local.tm_isdst > 0],
        "offset_minutes": -(local.tm_gmtoff // 60),
        "dst": bool(local.tm_isdst > 0),
    }


def read_platform() -> dict[str, Any]:
    """Return OS and architecture details."""
    return {
        "system": platform.system(),
        "release": platform.release(),
        "version": platform.version(),
        "machine": platform.machine(),
        "architecture": platform.architecture()[0],
    }


def read_language() -> dict[str, Any]:
    """Return locale and encoding settings."""
    lang, encoding = locale.getlocale()
    return {
        "locale": lang,
        "encoding": encoding,
        "preferred_encoding": locale.getpreferredencoding(False),
        "filesystem_encoding": sys.getfilesystemencoding(),
        "languages": [value for value in os.environ.get("LANGUAGE", "").split(":") if value],
    }


def read_cpu() -> dict[str, Any]:
    """Return processor counts and identification."""
    freq = None
    try:
        current = psutil.cpu_freq()
        if current is not None:
            freq = round(current.max or current.current)
    except (NotImplementedError, OSError, FileNotFoundError):
        logger.debug("CPU frequency not available on this platform")
    return {
        "logical": psutil.cpu_count(logical=True),
        "physical": psutil.cpu_count(logical=False),
        "processor": platform.processor() or None,
        "max_frequency_mhz": freq,
    }


def read_memory() -> dict[str, Any]:
    """Return total physical memory and swap."""
    return {
        "total": psutil.virtual_memory().total,
        "swap_total": psutil.swap_memory().total,
    }


def read_runtime() -> dict[str, Any]:
    """Return interpreter details."""
    return {
        "implementation": platform.python_implementation(),
        "version": platform.python_version(),
        "compiler": platform.python_compiler(),
        "byteorder": sys.byteorder,
        "max_unicode": sys.maxunicode,
        "float_epsilon": sys.float_info.epsilon,
    }


def read_terminal() -> dict[str, Any]:
    """Return terminal characteristics."""
    size = shutil.get_terminal_size(fallback=(0, 0))
    return {
        "term": os.environ.get("TERM"),
        "colorterm": os.environ.get("COLORTERM"),
        "columns": size.columns,
        "lines": size.lines,
        "is_tty": sys.stdout.isatty(),
    }


def read_environment_keys() -> dict[str, Any]:
    """Return a digest of the environment variable names (values are never read)."""
    names = sorted(os.environ)
    return {"count": len(names), "digest": simple_hash("\n".join(names))}


async def read_network_interfaces() -> list[dict[str, Any]]:
    """Return network interfaces with hashed hardware addresses."""
    addrs = await asyncio.to_thread(psutil.net_if_addrs)
    interfaces = []
    for name, entries in sorted(addrs.items()):
        macs = sorted(e.address for e in entries if e.family == psutil.AF_LINK and e.address)
        interfaces.append(
            {
                "name": name,
                "families": sorted({getattr(e.family, "name", str(e.family)) for e in entries}),
                "mac_digest": simple_hash(",".join(macs)) if macs else None,
            }
        )
    return interfaces


async def read_disks() -> list[dict[str, Any]]:
    """Return mounted filesystems and their sizes."""
    partitions = await asyncio.to_thread(psutil.disk_partitions, False)
    disks = []
    for part in partitions:
        try:
            usage = await asyncio.to_thread(psutil.disk_usage, part.mountpoint)
            total = usage.total
        except (PermissionError, OSError):
            total = None
        disks.append({"mountpoint": part.mountpoint, "fstype": part.fstype, "total": total})
    return sorted(disks, key=lambda disk: disk["mountpoint"])


async def read_hostname() -> dict[str, Any]:
    """Return the host name and the addresses it resolves to."""
    hostname = socket.gethostname()
    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(hostname, None)
        addresses = sorted({info[4][0] for info in infos})
    except socket.gaierror:
        addresses = []
    return {"hostname": hostname, "fqdn": socket.getfqdn(hostname), "addresses": addresses}


class OutboundAddressProbe:
    """Finds the local address used for outbound traffic.

    Opens a UDP socket in execute() and releases it in cleanup(). Connecting
    a UDP socket only selects a route, so no packet leaves the host.
    """

    name = "outbound"
    priority = 45
    feature_key = "network"
    requires_async = False
    timeout_ms: int | None = None
    timeout_group = "network"

    def __init__(self) -> None:
        self.enabled = True
        self._sock: socket.socket | None = None

    def execute(self) -> str | None:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self._sock = sock
        try:
            sock.connect(_ROUTE_PROBE_ADDRESS)
        except OSError:
            return None
        return sock.getsockname()[0]

    def get_stable_components(self, result: Any) -> Any:
        return None

    def cleanup(self) -> None:
        sock, self._sock = self._sock, None
        if sock is not None:
            sock.close()


def builtin_probes() -> list[Probe]:
    """Create a fresh set of the built-in probes."""
    return [
        FunctionProbe(
            name="tz",
            priority=1,
            feature_key="timezone",
            execute_fn=read_timezone,
            stable_fn=lambda r: [r["name"], r["offset_minutes"]],
        ),
        FunctionProbe(
            name="platform",
            priority=2,
            execute_fn=read_platform,
            stable_fn=lambda r: [r["system"], r["machine"], r["release"]],
        ),
        FunctionProbe(
            name="lang",
            priority=3,
            feature_key="language",
            execute_fn=read_language,
            stable_fn=lambda r: r["locale"],
        ),
        FunctionProbe(
            name="cpu",
            priority=4,
            feature_key="hardware",
            execute_fn=read_cpu,
            stable_fn=lambda r: [r["logical"], r["physical"]],
        ),
        FunctionProbe(
            name="mem",
            priority=5,
            feature_key="hardware",
            execute_fn=read_memory,
            stable_fn=lambda r: r["total"],
        ),
        FunctionProbe(
            name="runtime",
            priority=6,
            execute_fn=read_runtime,
            stable_fn=lambda r: [r["implementation"], r["version"]],
        ),
        FunctionProbe(name="terminal", priority=20, execute_fn=read_terminal),
        FunctionProbe(
            name="env_keys",
            priority=30,
            feature_key="environment",
            execute_fn=read_environment_keys,
        ),
        FunctionProbe(
            name="net_if",
            priority=40,
            feature_key="network",
            requires_async=True,
            timeout_group="network",
            execute_fn=read_network_interfaces,
            stable_fn=lambda r: [iface["name"] for iface in r],
        ),
        OutboundAddressProbe(),
        FunctionProbe(
            name="hostname",
            priority=50,
            feature_key="network",
            requires_async=True,
            timeout_group="network",
            execute_fn=read_hostname,
        ),
        FunctionProbe(
            name="disks",
            priority=60,
            feature_key="filesystem",
            requires_async=True,
            timeout_group="filesystem",
            execute_fn=read_disks,
        ),
    ]
