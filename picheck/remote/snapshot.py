"""
PiCheck Snapshot - run every query once and collect the results.

A failing query does not abort the snapshot: its field stays None and the
error message is kept in ``errors`` under the query name.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from picheck.core.beans import (
    DiskUsageBean,
    LoadAveragePeriod,
    NetworkInterfaceInformation,
    ProcessBean,
    RaspiMemoryBean,
    VcgencmdBean,
)
from picheck.core.errors import QueryError
from picheck.remote.query_service import QueryService

logger = logging.getLogger(__name__)


@dataclass
class SystemSnapshot:
    """Everything known about a host at one point in time."""
    hostname: str
    collected_at: str
    distribution: Optional[str] = None
    system_time: Optional[str] = None
    uptime_seconds: Optional[float] = None
    cpu_serial: Optional[str] = None
    load_average: Dict[str, float] = field(default_factory=dict)
    vcgencmd: Optional[VcgencmdBean] = None
    memory: Optional[RaspiMemoryBean] = None
    disks: Optional[List[DiskUsageBean]] = None
    processes: Optional[List[ProcessBean]] = None
    network: Optional[List[NetworkInterfaceInformation]] = None
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        def beans(items):
            return [b.to_dict() for b in items] if items is not None else None

        return {
            "hostname": self.hostname,
            "collected_at": self.collected_at,
            "distribution": self.distribution,
            "system_time": self.system_time,
            "uptime_seconds": self.uptime_seconds,
            "cpu_serial": self.cpu_serial,
            "load_average": dict(self.load_average),
            "vcgencmd": self.vcgencmd.to_dict() if self.vcgencmd else None,
            "memory": self.memory.to_dict() if self.memory else None,
            "disks": beans(self.disks),
            "processes": beans(self.processes),
            "network": beans(self.network),
            "errors": dict(self.errors),
        }


def _attempt(snapshot: SystemSnapshot, name: str, query: Callable[[], Any]) -> Any:
    try:
        return query()
    except QueryError as e:
        logger.warning(f"{snapshot.hostname}: {name} failed: {e}")
        snapshot.errors[name] = str(e)
        return None


def collect_snapshot(
    service: QueryService,
    show_root_processes: bool = False,
    vcgencmd_path: Optional[str] = None,
) -> SystemSnapshot:
    """
    Query a connected host for everything PiCheck knows about.

    Args:
        service: A connected QueryService
        show_root_processes: Include processes owned by root
        vcgencmd_path: Skip vcgencmd discovery and use this path

    Returns:
        SystemSnapshot with one field per query.

    Raises:
        QueryError: if the service is not connected.
    """
    if not service.is_connected:
        raise QueryError(
            f"Not connected to {service.hostname}",
            reason=QueryError.NOT_CONNECTED,
        )

    snapshot = SystemSnapshot(
        hostname=service.hostname,
        collected_at=datetime.now(timezone.utc).isoformat(),
    )

    snapshot.distribution = _attempt(snapshot, "distribution", service.query_distribution_name)
    snapshot.system_time = _attempt(snapshot, "system_time", service.query_system_time)
    snapshot.uptime_seconds = _attempt(snapshot, "uptime", service.query_uptime)
    snapshot.cpu_serial = _attempt(snapshot, "cpu_serial", service.query_cpu_serial)

    for period in LoadAveragePeriod:
        value = _attempt(
            snapshot,
            f"load_average_{period.name.lower()}",
            lambda: service.query_load_average(period),
        )
        if value is not None:
            snapshot.load_average[period.label] = value

    snapshot.vcgencmd = _attempt(snapshot, "vcgencmd", lambda: service.query_vcgencmd(vcgencmd_path))
    snapshot.memory = _attempt(snapshot, "memory", service.query_memory_information)
    snapshot.disks = _attempt(snapshot, "disks", service.query_disk_usage)
    snapshot.processes = _attempt(
        snapshot, "processes", lambda: service.query_processes(show_root_processes)
    )
    snapshot.network = _attempt(snapshot, "network", service.query_network_information)

    logger.info(
        f"Snapshot of {snapshot.hostname} collected with {len(snapshot.errors)} failed queries"
    )
    return snapshot
