"""
PiCheck Beans - value records returned by the query service.

Each record is populated from a single parsed command response and is not
modified afterwards.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Optional


class LoadAveragePeriod(Enum):
    """Time period of a /proc/loadavg column."""
    ONE_MINUTE = 0
    FIVE_MINUTES = 1
    FIFTEEN_MINUTES = 2

    @property
    def column(self) -> int:
        """Index of the period in the /proc/loadavg line."""
        return self.value

    @property
    def label(self) -> str:
        return {0: "1 min", 1: "5 min", 2: "15 min"}[self.value]


@dataclass(frozen=True)
class VcgencmdBean:
    """Firmware metrics read with vcgencmd."""
    arm_frequency: int  # Hz
    core_frequency: int  # Hz
    core_volts: float
    cpu_temperature: float  # Celsius
    version: str

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class RaspiMemoryBean:
    """Memory totals in bytes."""
    total_bytes: int
    used_bytes: int

    @property
    def free_bytes(self) -> int:
        return self.total_bytes - self.used_bytes

    @property
    def percent_used(self) -> float:
        if self.total_bytes == 0:
            return 0.0
        return round(100.0 * self.used_bytes / self.total_bytes, 1)

    def to_dict(self) -> Dict:
        return {
            "total_bytes": self.total_bytes,
            "used_bytes": self.used_bytes,
            "free_bytes": self.free_bytes,
            "percent_used": self.percent_used,
        }


@dataclass(frozen=True)
class DiskUsageBean:
    """One row of df output."""
    filesystem: str
    size_bytes: int
    used_bytes: int
    available_bytes: int
    used_percent: int
    mounted_on: str

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class ProcessBean:
    """One row of ps output."""
    pid: int
    user: str
    tty: str
    cpu_time: str
    command: str

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class WlanBean:
    """Wireless link info from /proc/net/wireless."""
    signal_level: int  # dBm
    link_quality: int  # percent of the 70-point scale

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class NetworkInterfaceInformation:
    """A non-loopback network interface."""
    name: str
    has_carrier: bool
    ip_address: Optional[str] = None
    wlan_info: Optional[WlanBean] = None

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "has_carrier": self.has_carrier,
            "ip_address": self.ip_address,
            "wlan_info": self.wlan_info.to_dict() if self.wlan_info else None,
        }
