"""
PiCheck Host Inventory - YAML file describing the monitored hosts.

Example inventory:
```yaml
defaults:
  username: pi
  port: 22
  timeout: 30

hosts:
  kitchen-pi:
    hostname: 192.168.1.20
    key_file: ~/.ssh/id_ed25519

  garage-pi:
    hostname: garage.local
    username: admin
    vcgencmd_path: /opt/vc/bin/vcgencmd
```
"""

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from picheck.remote.query_service import DEFAULT_TIMEOUT, QueryService

logger = logging.getLogger(__name__)

DEFAULT_INVENTORY = "picheck.yaml"
DEFAULT_USERNAME = "pi"


@dataclass
class HostConfig:
    """Connection settings for one host (no secrets)."""
    name: str
    hostname: str
    username: str = DEFAULT_USERNAME
    port: int = 22
    key_file: Optional[Path] = None
    timeout: int = DEFAULT_TIMEOUT
    vcgencmd_path: Optional[str] = None
    strict_host_keys: bool = False

    def __post_init__(self):
        if self.key_file and isinstance(self.key_file, str):
            self.key_file = Path(self.key_file).expanduser()

    @property
    def connection_string(self) -> str:
        """Get SSH connection string (user@host:port)."""
        return f"{self.username}@{self.hostname}:{self.port}"

    def __str__(self) -> str:
        return f"HostConfig({self.name}, {self.connection_string})"

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any],
                  defaults: Optional[Dict[str, Any]] = None) -> "HostConfig":
        """Create HostConfig from an inventory entry merged over defaults."""
        merged = dict(defaults or {})
        merged.update(data or {})
        return cls(
            name=name,
            hostname=str(merged.get("hostname", name)),
            username=str(merged.get("username", DEFAULT_USERNAME)),
            port=int(merged.get("port", 22)),
            key_file=merged.get("key_file"),
            timeout=int(merged.get("timeout", DEFAULT_TIMEOUT)),
            vcgencmd_path=merged.get("vcgencmd_path"),
            strict_host_keys=bool(merged.get("strict_host_keys", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result: Dict[str, Any] = {
            "hostname": self.hostname,
            "username": self.username,
            "port": self.port,
            "timeout": self.timeout,
        }
        if self.key_file:
            result["key_file"] = str(self.key_file)
        if self.vcgencmd_path:
            result["vcgencmd_path"] = self.vcgencmd_path
        if self.strict_host_keys:
            result["strict_host_keys"] = True
        return result

    @classmethod
    def from_string(cls, spec: str, key_file: Optional[Path] = None) -> "HostConfig":
        """
        Parse an ad-hoc host specification.

        Formats:
            host
            user@host
            user@host:port

        Examples:
            HostConfig.from_string("raspberrypi.local")
            HostConfig.from_string("pi@192.168.1.20")
            HostConfig.from_string("admin@garage.local:2222")
        """
        if "@" in spec:
            username, host_port = spec.split("@", 1)
            if not username:
                raise ValueError(f"Invalid host spec: {spec}. Expected user@host")
        else:
            username, host_port = DEFAULT_USERNAME, spec

        port = 22
        if ":" in host_port:
            host_port, port_str = host_port.rsplit(":", 1)
            try:
                port = int(port_str)
            except ValueError:
                raise ValueError(f"Invalid port in host spec: {spec}")

        if not host_port:
            raise ValueError(f"Invalid host spec: {spec}. Missing hostname")

        return cls(
            name=host_port,
            hostname=host_port,
            username=username,
            port=port,
            key_file=key_file,
        )

    def create_service(self) -> QueryService:
        """Build a (not yet connected) QueryService for this host."""
        return QueryService(
            self.hostname,
            self.username,
            port=self.port,
            command_timeout=self.timeout,
            strict_host_keys=self.strict_host_keys,
        )


@dataclass
class Inventory:
    """All hosts of an inventory file."""
    hosts: Dict[str, HostConfig] = field(default_factory=dict)
    source: Optional[Path] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Inventory":
        """Create inventory from dictionary."""
        inventory = cls()
        defaults = data.get("defaults") or {}
        if not isinstance(defaults, dict):
            raise ValueError("'defaults' must be a mapping")

        hosts = data.get("hosts") or {}
        if not isinstance(hosts, dict):
            raise ValueError("'hosts' must be a mapping of name to settings")

        for name, entry in hosts.items():
            if entry is not None and not isinstance(entry, dict):
                raise ValueError(f"Host '{name}' must be a mapping")
            inventory.hosts[str(name)] = HostConfig.from_dict(str(name), entry or {}, defaults)
        return inventory

    def get(self, name: str) -> Optional[HostConfig]:
        return self.hosts.get(name)

    def names(self) -> List[str]:
        return sorted(self.hosts)

    def resolve(self, target: str, key_file: Optional[Path] = None) -> HostConfig:
        """
        Look up ``target`` by inventory name, falling back to parsing it as
        a ``user@host[:port]`` spec.
        """
        host = self.get(target)
        if host is not None:
            if key_file:
                return replace(host, key_file=key_file)
            return host
        return HostConfig.from_string(target, key_file)


def load_inventory(path: Path) -> Inventory:
    """
    Load a host inventory from a YAML file.

    Raises:
        ValueError: if the file is missing or not a valid inventory.
    """
    path = Path(path)
    if not path.exists():
        raise ValueError(f"Inventory file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Inventory {path} must contain a mapping")

    inventory = Inventory.from_dict(data)
    inventory.source = path
    logger.debug(f"Loaded {len(inventory.hosts)} hosts from {path}")
    return inventory


def create_example_inventory() -> str:
    """Return an example inventory as YAML text."""
    example = {
        "defaults": {"username": DEFAULT_USERNAME, "port": 22, "timeout": DEFAULT_TIMEOUT},
        "hosts": {
            "kitchen-pi": {"hostname": "192.168.1.20", "key_file": "~/.ssh/id_ed25519"},
            "garage-pi": {"hostname": "garage.local", "username": "admin"},
        },
    }
    return yaml.safe_dump(example, sort_keys=False)
