"""Tests for the YAML host inventory."""

import pytest
import yaml
from pathlib import Path

from picheck.config import (
    HostConfig,
    Inventory,
    create_example_inventory,
    load_inventory,
)
from picheck.remote.query_service import QueryService


class TestHostConfig:
    """Tests for HostConfig dataclass."""

    def test_defaults(self):
        host = HostConfig(name="pi", hostname="raspberrypi.local")
        assert host.username == "pi"
        assert host.port == 22
        assert host.key_file is None
        assert host.connection_string == "pi@raspberrypi.local:22"

    def test_key_file_string_conversion(self):
        host = HostConfig(name="pi", hostname="pi.local", key_file="/home/user/.ssh/id_rsa")
        assert isinstance(host.key_file, Path)

    def test_from_dict_with_defaults(self):
        host = HostConfig.from_dict(
            "garage",
            {"hostname": "garage.local", "port": 2222},
            defaults={"username": "admin", "timeout": 5},
        )
        assert host.name == "garage"
        assert host.hostname == "garage.local"
        assert host.username == "admin"
        assert host.port == 2222
        assert host.timeout == 5

    def test_from_dict_hostname_defaults_to_name(self):
        host = HostConfig.from_dict("raspberrypi.local", {})
        assert host.hostname == "raspberrypi.local"

    def test_to_dict_omits_unset(self):
        data = HostConfig(name="pi", hostname="pi.local").to_dict()
        assert "key_file" not in data
        assert "vcgencmd_path" not in data
        assert data["hostname"] == "pi.local"

    def test_create_service(self):
        host = HostConfig(name="pi", hostname="pi.local", username="admin", port=2222, timeout=7)
        service = host.create_service()
        assert isinstance(service, QueryService)
        assert service.hostname == "pi.local"
        assert service.username == "admin"
        assert service.port == 2222
        assert service.command_timeout == 7
        assert service.is_connected is False


class TestHostConfigFromString:
    """Tests for HostConfig.from_string."""

    def test_host_only(self):
        host = HostConfig.from_string("raspberrypi.local")
        assert host.hostname == "raspberrypi.local"
        assert host.username == "pi"

    def test_user_at_host(self):
        host = HostConfig.from_string("admin@192.168.1.20")
        assert host.username == "admin"
        assert host.hostname == "192.168.1.20"
        assert host.port == 22

    def test_with_port(self):
        host = HostConfig.from_string("admin@garage.local:2222")
        assert host.hostname == "garage.local"
        assert host.port == 2222

    def test_with_key_file(self):
        host = HostConfig.from_string("pi@pi.local", key_file=Path("/tmp/key"))
        assert host.key_file == Path("/tmp/key")

    @pytest.mark.parametrize("spec", ["@pi.local", "pi@", "pi@pi.local:ssh"])
    def test_invalid(self, spec):
        with pytest.raises(ValueError):
            HostConfig.from_string(spec)


class TestInventory:

    def test_from_dict(self):
        inventory = Inventory.from_dict({
            "defaults": {"username": "admin"},
            "hosts": {
                "kitchen-pi": {"hostname": "192.168.1.20"},
                "garage-pi": {"hostname": "garage.local", "username": "pi"},
            },
        })
        assert inventory.names() == ["garage-pi", "kitchen-pi"]
        assert inventory.get("kitchen-pi").username == "admin"
        assert inventory.get("garage-pi").username == "pi"
        assert inventory.get("missing") is None

    def test_host_without_settings(self):
        inventory = Inventory.from_dict({"hosts": {"raspberrypi.local": None}})
        assert inventory.get("raspberrypi.local").hostname == "raspberrypi.local"

    def test_invalid_hosts(self):
        with pytest.raises(ValueError):
            Inventory.from_dict({"hosts": ["a", "b"]})

    def test_resolve_by_name(self):
        inventory = Inventory.from_dict({"hosts": {"kitchen-pi": {"hostname": "192.168.1.20"}}})
        assert inventory.resolve("kitchen-pi").hostname == "192.168.1.20"

    def test_resolve_spec(self):
        host = Inventory().resolve("admin@garage.local:2222")
        assert host.username == "admin"
        assert host.port == 2222

    def test_resolve_overrides_key(self):
        inventory = Inventory.from_dict({"hosts": {"kitchen-pi": {}}})
        host = inventory.resolve("kitchen-pi", key_file=Path("/tmp/key"))
        assert host.key_file == Path("/tmp/key")

    def test_resolve_key_leaves_inventory_untouched(self):
        inventory = Inventory.from_dict({"hosts": {"kitchen-pi": {"hostname": "192.168.1.20"}}})
        inventory.resolve("kitchen-pi", key_file=Path("/tmp/key"))

        assert inventory.get("kitchen-pi").key_file is None
        assert inventory.resolve("kitchen-pi").key_file is None


class TestLoadInventory:

    def test_load_valid(self, tmp_path):
        path = tmp_path / "picheck.yaml"
        path.write_text(
            "defaults:\n"
            "  username: pi\n"
            "  timeout: 10\n"
            "hosts:\n"
            "  kitchen-pi:\n"
            "    hostname: 192.168.1.20\n"
            "    key_file: /tmp/id_ed25519\n"
        )
        inventory = load_inventory(path)
        host = inventory.get("kitchen-pi")
        assert host.timeout == 10
        assert host.key_file == Path("/tmp/id_ed25519")
        assert inventory.source == path

    def test_load_empty(self, tmp_path):
        path = tmp_path / "picheck.yaml"
        path.write_text("")
        assert load_inventory(path).hosts == {}

    def test_nonexistent_file(self, tmp_path):
        with pytest.raises(ValueError):
            load_inventory(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "picheck.yaml"
        path.write_text("hosts: [unclosed\n")
        with pytest.raises(ValueError):
            load_inventory(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "picheck.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError):
            load_inventory(path)


class TestExampleInventory:

    def test_example_is_valid(self):
        data = yaml.safe_load(create_example_inventory())
        inventory = Inventory.from_dict(data)
        assert "kitchen-pi" in inventory.hosts
