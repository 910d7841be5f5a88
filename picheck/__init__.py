"""
PiCheck - Remote monitoring for Raspberry Pi and other Linux boards

Connects to a host over SSH, runs a fixed set of diagnostic commands and
parses their output into typed records.

Usage:
    picheck status pi@raspberrypi.local
    picheck status kitchen-pi --output kitchen.json
    picheck run kitchen-pi "uname -a"
    picheck reboot kitchen-pi

Features:
    - vcgencmd metrics (clocks, core voltage, temperature, firmware)
    - Uptime, load average, memory, disks, processes, network
    - Reboot/halt via sudo
    - YAML host inventory, JSON/YAML snapshot export
"""

__version__ = "1.0.0"

from picheck.core.errors import QueryError
from picheck.core.beans import LoadAveragePeriod
from picheck.remote.query_service import QueryService

__all__ = [
    "__version__",
    "QueryError",
    "LoadAveragePeriod",
    "QueryService",
]
