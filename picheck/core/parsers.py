"""
PiCheck Parsers - turn raw command output into beans.

Every function takes the plain text a remote command printed and either
returns a fully populated value or raises QueryError. Partial results are
never returned.

Supported outputs:
- vcgencmd measure_temp / measure_clock / measure_volts / version
- /proc/uptime, /proc/loadavg + /proc/stat, /proc/cpuinfo, /proc/meminfo
- df -P -k, ps, date -R
- /etc/os-release or lsb_release -a
- /sys/class/net, ip addr, /proc/net/wireless
"""

import re
from email.utils import parsedate_to_datetime
from typing import Dict, List, Optional

from picheck.core.beans import (
    DiskUsageBean,
    LoadAveragePeriod,
    ProcessBean,
    RaspiMemoryBean,
    WlanBean,
)
from picheck.core.errors import QueryError

TEMPERATURE_PATTERN = re.compile(r"temp=(-?\d+(?:\.\d+)?)'C")
CLOCK_PATTERN = re.compile(r"frequency\(\d+\)=(\d+)")
VOLTS_PATTERN = re.compile(r"volt=(\d+(?:\.\d+)?)V")
SERIAL_PATTERN = re.compile(r"^Serial\s*:\s*(\S+)", re.MULTILINE)
STAT_CPU_PATTERN = re.compile(r"^cpu\d+\s")
INET_PATTERN = re.compile(r"\binet (\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})")
# "<uptime> <idle>", optionally behind a single word label
UPTIME_PATTERN = re.compile(
    r"^\s*(?:(?!(?i:nan|inf(?:inity)?)\b)[A-Za-z]+\s+)?(\d+(?:\.\d+)?)\s+(\d+(?:\.\d+)?)\s*$"
)

# Maximum link quality reported by most wireless drivers
WLAN_MAX_QUALITY = 70


def _to_float(token: str) -> Optional[float]:
    try:
        return float(token)
    except ValueError:
        return None


# =========================================================================
# vcgencmd
# =========================================================================

def parse_temperature(output: str) -> float:
    """Parse ``temp=42.8'C`` into 42.8."""
    match = TEMPERATURE_PATTERN.search(output)
    if not match:
        raise QueryError.parse_failed("temperature", output)
    return float(match.group(1))


def parse_clock(output: str) -> int:
    """Parse ``frequency(45)=700000000`` into a frequency in Hz."""
    match = CLOCK_PATTERN.search(output)
    if not match:
        raise QueryError.parse_failed("clock frequency", output)
    return int(match.group(1))


def parse_volts(output: str) -> float:
    """Parse ``volt=1.20V`` into 1.2."""
    match = VOLTS_PATTERN.search(output)
    if not match:
        raise QueryError.parse_failed("voltage", output)
    return float(match.group(1))


def parse_firmware_version(output: str) -> str:
    """
    Extract the firmware version from ``vcgencmd version``.

    Typical output:
        Oct 25 2012 16:37:21
        Copyright (c) 2012 Broadcom
        version 346337 (release)

    Returns the text after ``version``; if no such line exists the build
    date on the first line is used instead.
    """
    lines = [line.strip() for line in output.splitlines() if line.strip()]
    if not lines:
        raise QueryError.parse_failed("firmware version", output)
    for line in lines:
        if line.startswith("version "):
            return line[len("version "):].strip()
    return lines[0]


# =========================================================================
# /proc
# =========================================================================

def parse_uptime(output: str) -> float:
    """
    Parse /proc/uptime into seconds.

    The output must be exactly the uptime and idle seconds, optionally
    behind a one word label, so both ``3600.50 2000.00`` and
    ``up 3600.50 2000.00`` give 3600.5.
    """
    match = UPTIME_PATTERN.match(output)
    if not match:
        raise QueryError.parse_failed("uptime", output)
    return float(match.group(1))


def parse_load_average(output: str, period: LoadAveragePeriod) -> float:
    """
    Compute the normalized load average.

    Expects the /proc/loadavg line followed by the per-core ``cpuN`` lines
    of /proc/stat. The load for the requested period is divided by the
    number of cores and clamped to [0, 1].
    """
    lines = output.strip().splitlines()
    if not lines:
        raise QueryError.parse_failed("load average", output)

    columns = lines[0].split()
    loads = [_to_float(c) for c in columns[:3]]
    if len(loads) < 3 or any(v is None for v in loads):
        raise QueryError.parse_failed("load average", output)

    cores = sum(1 for line in lines[1:] if STAT_CPU_PATTERN.match(line))
    if cores == 0:
        raise QueryError.parse_failed("number of cpu cores", output)

    load = loads[period.column] / cores
    return max(0.0, min(1.0, load))


def parse_cpu_serial(output: str) -> str:
    """Pick the ``Serial : ...`` value out of /proc/cpuinfo."""
    match = SERIAL_PATTERN.search(output)
    if not match:
        raise QueryError.parse_failed("cpu serial", output)
    return match.group(1)


def parse_memory(output: str) -> RaspiMemoryBean:
    """
    Parse /proc/meminfo.

    Used memory is MemTotal minus MemAvailable. Kernels older than 3.14 have
    no MemAvailable, so MemFree is used there.
    """
    values: Dict[str, int] = {}
    for line in output.splitlines():
        if ":" not in line:
            continue
        key, rest = line.split(":", 1)
        parts = rest.split()
        if not parts or not parts[0].isdigit():
            continue
        amount = int(parts[0])
        if len(parts) > 1 and parts[1].lower() == "kb":
            amount *= 1024
        values[key.strip()] = amount

    total = values.get("MemTotal")
    available = values.get("MemAvailable", values.get("MemFree"))
    if total is None or available is None or available > total:
        raise QueryError.parse_failed("memory information", output)

    return RaspiMemoryBean(total_bytes=total, used_bytes=total - available)


# =========================================================================
# Tools
# =========================================================================

def parse_disk_usage(output: str) -> List[DiskUsageBean]:
    """
    Parse POSIX ``df -P -k`` output.

    Header:
        Filesystem 1024-blocks Used Available Capacity Mounted on

    The header is recognized by position only since GNU df translates it
    into the remote locale.
    """
    lines = [line for line in output.splitlines() if line.strip()]
    if not lines:
        raise QueryError.parse_failed("disk usage", output)
    header = lines[0].split()
    if len(header) < 6 or header[1].isdigit():
        raise QueryError.parse_failed("disk usage", output)

    disks = []
    for line in lines[1:]:
        parts = line.split()
        if len(parts) < 6:
            raise QueryError.parse_failed("disk usage", line)
        try:
            size, used, available = (int(p) * 1024 for p in parts[1:4])
            capacity = parts[4].rstrip("%")
            used_percent = 0 if capacity == "-" else int(capacity)
        except ValueError as e:
            raise QueryError.parse_failed("disk usage", line) from e

        disks.append(DiskUsageBean(
            filesystem=parts[0],
            size_bytes=size,
            used_bytes=used,
            available_bytes=available,
            used_percent=used_percent,
            mounted_on=" ".join(parts[5:]),
        ))

    if not disks:
        raise QueryError.parse_failed("disk usage", output)
    return disks


def parse_distribution_name(output: str) -> str:
    """
    Read the distribution name from /etc/os-release (``PRETTY_NAME``) or
    from ``lsb_release -a`` (``Description:``).
    """
    for line in output.splitlines():
        line = line.strip()
        if line.startswith("PRETTY_NAME="):
            name = line.split("=", 1)[1].strip().strip('"').strip("'")
        elif line.startswith("Description:"):
            name = line.split(":", 1)[1].strip()
        else:
            continue
        if name:
            return name
    raise QueryError.parse_failed("distribution name", output)


def parse_system_time(output: str) -> str:
    """Validate and return the RFC-2822 time printed by ``date -R``."""
    value = output.strip()
    try:
        if parsedate_to_datetime(value) is None:
            raise ValueError(value)
    except (TypeError, ValueError) as e:
        raise QueryError.parse_failed("system time", output) from e
    return value


def parse_processes(output: str) -> List[ProcessBean]:
    """
    Parse ``ps -o pid,user,tty,time,comm`` output.

    The command column may contain spaces and is kept whole.
    """
    lines = [line for line in output.splitlines() if line.strip()]
    if not lines or lines[0].split()[0] != "PID":
        raise QueryError.parse_failed("process list", output)

    processes = []
    for line in lines[1:]:
        parts = line.split(None, 4)
        if len(parts) < 5 or not parts[0].isdigit():
            raise QueryError.parse_failed("process list", line)
        pid, user, tty, cpu_time, command = parts
        processes.append(ProcessBean(
            pid=int(pid),
            user=user,
            tty=tty,
            cpu_time=cpu_time,
            command=command.strip(),
        ))
    return processes


# =========================================================================
# Network
# =========================================================================

def parse_interface_names(output: str) -> List[str]:
    """Interface names from ``ls -1 /sys/class/net``, loopback excluded."""
    names = [line.strip() for line in output.splitlines()]
    return [name for name in names if name and name != "lo"]


def parse_carrier(output: str) -> bool:
    """Parse /sys/class/net/<iface>/carrier (``1`` = link up)."""
    value = output.strip()
    if value not in ("0", "1"):
        raise QueryError.parse_failed("carrier state", output)
    return value == "1"


def parse_ip_address(output: str) -> Optional[str]:
    """First IPv4 address in ``ip -f inet addr show`` output, if any."""
    match = INET_PATTERN.search(output)
    return match.group(1) if match else None


def parse_wireless(output: str, interface: str) -> Optional[WlanBean]:
    """
    Read link quality and signal level of ``interface`` from
    /proc/net/wireless. Returns None when the interface is not wireless.

        Inter-| sta-|   Quality        |   Discarded packets
         face | tus | link level noise |  nwid  crypt   frag
         wlan0: 0000   54.  -56.  -256        0      0      0
    """
    prefix = f"{interface}:"
    for line in output.splitlines():
        parts = line.split()
        if not parts or parts[0] != prefix:
            continue
        if len(parts) < 4:
            raise QueryError.parse_failed("wireless information", line)
        link = _to_float(parts[2].rstrip("."))
        level = _to_float(parts[3].rstrip("."))
        if link is None or level is None:
            raise QueryError.parse_failed("wireless information", line)
        quality = min(100, round(link * 100 / WLAN_MAX_QUALITY))
        return WlanBean(signal_level=int(level), link_quality=int(quality))
    return None


def wireless_interfaces(output: str) -> List[str]:
    """Names of all interfaces listed in /proc/net/wireless."""
    names = []
    for line in output.splitlines():
        parts = line.split()
        if parts and parts[0].endswith(":") and len(parts[0]) > 1:
            names.append(parts[0][:-1])
    return names
