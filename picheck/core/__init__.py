"""
PiCheck Core - value records, parsing and errors.
"""

from picheck.core.beans import (
    DiskUsageBean,
    LoadAveragePeriod,
    NetworkInterfaceInformation,
    ProcessBean,
    RaspiMemoryBean,
    VcgencmdBean,
    WlanBean,
)
from picheck.core.errors import QueryError

__all__ = [
    "DiskUsageBean",
    "LoadAveragePeriod",
    "NetworkInterfaceInformation",
    "ProcessBean",
    "RaspiMemoryBean",
    "VcgencmdBean",
    "WlanBean",
    "QueryError",
]
