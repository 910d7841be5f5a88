"""Shared fixtures: sample command output and a fake paramiko client."""

import socket
import threading
from unittest.mock import MagicMock, patch

import pytest

from picheck.remote import query_service as qs
from picheck.remote.query_service import QueryService


SAMPLES = {
    "temp": "temp=42.8'C\n",
    "clock_arm": "frequency(48)=1500398464\n",
    "clock_core": "frequency(1)=500000992\n",
    "volts": "volt=0.8500V\n",
    "version": (
        "Jan 20 2022 13:56:48 \n"
        "Copyright (c) 2012 Broadcom\n"
        "version bd88f66f8952d34e4e0613a85c7a6d3da49e13e2 (clean) (release) (start)\n"
    ),
    "uptime": "3600.50 2000.00\n",
    "loadavg": (
        "0.50 1.20 2.40 1/123 4567\n"
        "cpu0 2255 34 2290 22625563 6290 127 456 0 0 0\n"
        "cpu1 1887 29 2137 22647854 1654 0 12 0 0 0\n"
        "cpu2 1946 29 2105 22643227 3054 0 10 0 0 0\n"
        "cpu3 1722 31 1985 22653126 1543 0 8 0 0 0\n"
    ),
    "cpuinfo": (
        "processor\t: 0\n"
        "model name\t: ARMv7 Processor rev 4 (v7l)\n"
        "Hardware\t: BCM2835\n"
        "Revision\t: a02082\n"
        "Serial\t\t: 00000000abcdef12\n"
        "Model\t\t: Raspberry Pi 3 Model B Rev 1.2\n"
    ),
    "meminfo": (
        "MemTotal:         948304 kB\n"
        "MemFree:          263832 kB\n"
        "MemAvailable:     712648 kB\n"
        "Buffers:           41232 kB\n"
        "Cached:           402312 kB\n"
    ),
    "df": (
        "Filesystem     1024-blocks    Used Available Capacity Mounted on\n"
        "/dev/root         30358348 4712544  24353124      17% /\n"
        "devtmpfs            340548       0    340548       0% /dev\n"
        "/dev/mmcblk0p1      258095   50566    207529      20% /boot\n"
        "/dev/sda1          1000000  500000    500000      50% /media/usb stick\n"
    ),
    "os_release": (
        'PRETTY_NAME="Raspbian GNU/Linux 11 (bullseye)"\n'
        'NAME="Raspbian GNU/Linux"\n'
        'VERSION_ID="11"\n'
        "ID=raspbian\n"
    ),
    "lsb_release": (
        "Distributor ID:\tRaspbian\n"
        "Description:\tRaspbian GNU/Linux 10 (buster)\n"
        "Release:\t10\n"
        "Codename:\tbuster\n"
    ),
    "date": "Mon, 19 Oct 2026 14:03:11 +0200\n",
    "ps": (
        "  PID USER     TT           TIME COMMAND\n"
        "  412 pi       pts/0    00:00:01 bash\n"
        "  988 pi       ?        00:12:40 python3\n"
    ),
    "ps_all": (
        "  PID USER     TT           TIME COMMAND\n"
        "    1 root     ?        00:00:04 systemd\n"
        "  412 pi       pts/0    00:00:01 bash\n"
        "  988 pi       ?        00:12:40 python3\n"
    ),
    "interfaces": "eth0\nlo\nwlan0\n",
    "wireless": (
        "Inter-| sta-|   Quality        |   Discarded packets               | Missed | WE\n"
        " face | tus | link level noise |  nwid  crypt   frag  retry   misc | beacon | 22\n"
        " wlan0: 0000   54.  -56.  -256        0      0      0      0      0        0\n"
    ),
    "ip_wlan0": (
        "3: wlan0: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500 qdisc pfifo_fast state UP\n"
        "    inet 192.168.1.20/24 brd 192.168.1.255 scope global dynamic wlan0\n"
        "       valid_lft 85922sec preferred_lft 85922sec\n"
    ),
}

VCGENCMD = "/usr/bin/vcgencmd"


@pytest.fixture
def samples():
    """Sample output of every supported command."""
    return dict(SAMPLES)


@pytest.fixture
def full_responses():
    """Responses of a healthy Raspberry Pi, keyed by command prefix."""
    return {
        "for p in": VCGENCMD + "\n",
        f"{VCGENCMD} measure_clock arm": SAMPLES["clock_arm"],
        f"{VCGENCMD} measure_clock core": SAMPLES["clock_core"],
        f"{VCGENCMD} measure_volts core": SAMPLES["volts"],
        f"{VCGENCMD} measure_temp": SAMPLES["temp"],
        f"{VCGENCMD} version": SAMPLES["version"],
        qs.UPTIME_CMD: SAMPLES["uptime"],
        qs.LOAD_AVG_CMD: SAMPLES["loadavg"],
        qs.CPUINFO_CMD: SAMPLES["cpuinfo"],
        qs.MEMINFO_CMD: SAMPLES["meminfo"],
        qs.DISK_USAGE_CMD: SAMPLES["df"],
        qs.DISTRIBUTION_CMD: SAMPLES["os_release"],
        qs.SYSTEM_TIME_CMD: SAMPLES["date"],
        qs.PROCESSES_NO_ROOT_CMD: SAMPLES["ps"],
        qs.PROCESSES_ALL_CMD: SAMPLES["ps_all"],
        qs.INTERFACES_CMD: SAMPLES["interfaces"],
        qs.WIRELESS_CMD: SAMPLES["wireless"],
        "cat /sys/class/net/eth0/carrier": "0\n",
        "cat /sys/class/net/wlan0/carrier": "1\n",
        "ip -f inet addr show dev eth0": "",
        "ip -f inet addr show dev wlan0": SAMPLES["ip_wlan0"],
    }


class FakeChannel:
    """
    Just enough of paramiko.Channel for QueryService to drain.

    ``endless`` keeps producing output forever, ``hang`` never reports an
    exit status. Either one only ends when the caller gives up.
    """

    def __init__(self, out="", err="", rc=0, endless=False, hang=False):
        self._out = out.encode()
        self._err = err.encode()
        self.rc = rc
        self.endless = endless
        self.hang = hang
        self.closed = False
        self.status_event = threading.Event()
        if not (endless or hang):
            self.status_event.set()

    def recv_ready(self):
        return self.endless or bool(self._out)

    def recv(self, nbytes):
        if self.endless:
            return b"y\n"
        data, self._out = self._out[:nbytes], self._out[nbytes:]
        return data

    def recv_stderr_ready(self):
        return bool(self._err)

    def recv_stderr(self, nbytes):
        data, self._err = self._err[:nbytes], self._err[nbytes:]
        return data

    def exit_status_ready(self):
        return self.status_event.is_set()

    def recv_exit_status(self):
        return self.rc

    def close(self):
        self.closed = True


class FakeSSH:
    """
    Stand-in for paramiko.SSHClient.

    ``responses`` maps a command (or a command prefix, longest wins) to
    stdout text, an ``(stdout, stderr, exit_status)`` tuple or a
    FakeChannel. Unknown commands behave like a missing binary (exit
    status 127).
    """

    def __init__(self, client):
        self.client = client
        self.responses = {}
        self.executed = []  # (command, stdin mock)
        client.exec_command.side_effect = self._exec_command

    def _exec_command(self, command, timeout=None):
        matches = [k for k in self.responses if command == k or command.startswith(k)]
        if not matches:
            channel = FakeChannel("", f"sh: 1: {command.split()[0]}: not found", 127)
        else:
            value = self.responses[max(matches, key=len)]
            if isinstance(value, FakeChannel):
                channel = value
            elif isinstance(value, str):
                channel = FakeChannel(value)
            else:
                channel = FakeChannel(*value)
        stdin = MagicMock()
        stdout = MagicMock()
        stdout.channel = channel
        stderr = MagicMock()
        stderr.channel = channel
        self.executed.append((command, stdin))
        return stdin, stdout, stderr

    @property
    def commands(self):
        return [c for c, _ in self.executed]


@pytest.fixture
def fake_ssh():
    """Patch paramiko.SSHClient for the duration of a test."""
    with patch("picheck.remote.query_service.paramiko.SSHClient") as client_cls:
        yield FakeSSH(client_cls.return_value)


@pytest.fixture
def service(fake_ssh, full_responses):
    """A connected QueryService talking to a healthy fake host."""
    fake_ssh.responses.update(full_responses)
    svc = QueryService("raspberrypi.local", "pi")
    svc.connect("raspberry")
    yield svc
    svc.disconnect()


@pytest.fixture
def timeout_error():
    return socket.timeout("timed out")


@pytest.fixture
def make_channel():
    """Factory for FakeChannel responses."""
    return FakeChannel
