"""
PiCheck Query Service - SSH session and the fixed diagnostic queries.

One QueryService wraps one paramiko SSH session to one host:

    service = QueryService("raspberrypi.local", "pi")
    service.connect("raspberry")
    try:
        print(service.query_uptime())
        print(service.query_load_average(LoadAveragePeriod.FIVE_MINUTES))
    finally:
        service.disconnect()

The session runs one command at a time and is not safe for concurrent use.
Every failure is raised as QueryError; nothing is retried.
"""

import logging
import shlex
import socket
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import paramiko

from picheck.core import parsers
from picheck.core.beans import (
    DiskUsageBean,
    LoadAveragePeriod,
    NetworkInterfaceInformation,
    ProcessBean,
    RaspiMemoryBean,
    VcgencmdBean,
)
from picheck.core.errors import QueryError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30  # seconds per command
DEFAULT_CONNECT_TIMEOUT = 10
POLL_INTERVAL = 0.1  # seconds between exit status checks
RECV_BUFFER_SIZE = 32768

VCGENCMD_LOCATIONS = [
    "/usr/bin/vcgencmd",
    "/opt/vc/bin/vcgencmd",
    "/usr/local/bin/vcgencmd",
]

UPTIME_CMD = "cat /proc/uptime"
LOAD_AVG_CMD = "cat /proc/loadavg; grep '^cpu[0-9]' /proc/stat"
CPUINFO_CMD = "cat /proc/cpuinfo"
MEMINFO_CMD = "cat /proc/meminfo"
DISK_USAGE_CMD = "LC_ALL=C df -P -k"
DISTRIBUTION_CMD = "cat /etc/os-release 2>/dev/null || LC_ALL=C lsb_release -a 2>/dev/null"
SYSTEM_TIME_CMD = "LC_ALL=C date -R"
PS_COLUMNS = "-o pid,user,tty,time,comm"
PROCESSES_ALL_CMD = f"LC_ALL=C ps -A {PS_COLUMNS}"
PROCESSES_NO_ROOT_CMD = f"LC_ALL=C ps -U root -u root -N {PS_COLUMNS}"
INTERFACES_CMD = "ls -1 /sys/class/net"
WIRELESS_CMD = "cat /proc/net/wireless 2>/dev/null || true"
REBOOT_CMD = "sudo -S -p '' /sbin/shutdown -r now"
HALT_CMD = "sudo -S -p '' /sbin/shutdown -h now"

# Exit status paramiko reports when the channel closes without one
NO_EXIT_STATUS = -1


@dataclass(frozen=True)
class CmdResult:
    rc: int
    out: str
    err: str


class QueryService:
    """
    Stateful client for one remote host.

    Connect with one of the ``connect*`` methods, issue queries, then
    ``disconnect()``. Can be used as a context manager, which disconnects
    on exit.
    """

    def __init__(
        self,
        hostname: str,
        username: str,
        port: int = 22,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        command_timeout: float = DEFAULT_TIMEOUT,
        strict_host_keys: bool = False,
    ):
        self._hostname = hostname
        self.username = username
        self.port = port
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self.strict_host_keys = strict_host_keys
        self._client: Optional[paramiko.SSHClient] = None

    @property
    def hostname(self) -> str:
        return self._hostname

    @hostname.setter
    def hostname(self, hostname: str) -> None:
        """Takes effect on the next connect."""
        self._hostname = hostname

    @property
    def connection_string(self) -> str:
        return f"{self.username}@{self._hostname}:{self.port}"

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def __enter__(self) -> "QueryService":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()

    def __repr__(self) -> str:
        state = "connected" if self.is_connected else "disconnected"
        return f"QueryService({self.connection_string}, {state})"

    # -------------------------
    # session lifecycle
    # -------------------------

    def connect(self, password: str) -> None:
        """Open a session using password authentication."""
        self._connect(password=password)

    def connect_with_key(self, key_file: str) -> None:
        """Open a session using a private key (OpenSSH/PEM format)."""
        self._connect(key_filename=self._check_key_file(key_file))

    def connect_with_key_and_passphrase(self, key_file: str, passphrase: str) -> None:
        """Open a session using a passphrase protected private key."""
        self._connect(key_filename=self._check_key_file(key_file), passphrase=passphrase)

    def disconnect(self) -> None:
        """Close the session. Does nothing when not connected."""
        if self._client is None:
            return
        logger.info(f"Disconnecting from {self.connection_string}")
        try:
            self._client.close()
        finally:
            self._client = None

    def _check_key_file(self, key_file: str) -> str:
        path = Path(key_file).expanduser()
        if not path.is_file():
            raise QueryError(
                f"Private key file not found: {path}",
                reason=QueryError.CONNECTION_FAILED,
            )
        return str(path)

    def _new_client(self) -> paramiko.SSHClient:
        client = paramiko.SSHClient()
        if self.strict_host_keys:
            client.load_system_host_keys()
            client.set_missing_host_key_policy(paramiko.RejectPolicy())
        else:
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        return client

    def _connect(self, **auth) -> None:
        if self._client is not None:
            self.disconnect()

        logger.info(f"Connecting to {self.connection_string}")
        client = self._new_client()
        try:
            client.connect(
                hostname=self._hostname,
                port=self.port,
                username=self.username,
                timeout=self.connect_timeout,
                allow_agent=False,
                look_for_keys=False,
                **auth,
            )
        except paramiko.AuthenticationException as e:
            client.close()
            raise QueryError(
                f"Authentication failed for {self.connection_string}: {e}",
                reason=QueryError.AUTHENTICATION_FAILED,
            ) from e
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise QueryError(
                f"Could not connect to {self.connection_string}: {e}",
                reason=QueryError.CONNECTION_FAILED,
            ) from e

        self._client = client
        logger.info(f"Connected to {self.connection_string}")

    # -------------------------
    # command execution
    # -------------------------

    def _exec(self, command: str, timeout: Optional[float] = None,
              input_data: Optional[str] = None) -> CmdResult:
        """Run a command and return its result whatever the exit status."""
        if timeout is None:
            timeout = self.command_timeout
        if self._client is None:
            raise QueryError(
                f"Not connected to {self._hostname}",
                reason=QueryError.NOT_CONNECTED,
                command=command,
            )

        logger.debug(f"[{self._hostname}] $ {command}")
        try:
            stdin, stdout, _ = self._client.exec_command(command, timeout=timeout)
            if input_data is not None:
                stdin.write(input_data)
                stdin.flush()
                stdin.channel.shutdown_write()
            rc, out, err = self._collect(stdout.channel, command, timeout)
        except socket.timeout as e:
            raise QueryError(
                f"Command timed out after {timeout}s",
                reason=QueryError.TIMEOUT,
                command=command,
            ) from e
        except (paramiko.SSHException, OSError) as e:
            raise QueryError(
                f"Command could not be executed: {e}",
                reason=QueryError.COMMAND_FAILED,
                command=command,
            ) from e

        logger.debug(f"[{self._hostname}] exit status {rc}")
        return CmdResult(rc, out, err)

    def _collect(self, channel: paramiko.Channel, command: str,
                 timeout: float) -> Tuple[int, str, str]:
        """
        Drain stdout and stderr until the command exits.

        The timeout bounds the whole run, not a single read: a command that
        keeps printing, or closes its output and keeps running, is cut off
        once the deadline passes.
        """
        deadline = time.monotonic() + timeout
        out: List[bytes] = []
        err: List[bytes] = []
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                channel.close()
                raise QueryError(
                    f"Command timed out after {timeout}s",
                    reason=QueryError.TIMEOUT,
                    command=command,
                )
            if channel.recv_ready():
                out.append(channel.recv(RECV_BUFFER_SIZE))
            elif channel.recv_stderr_ready():
                err.append(channel.recv_stderr(RECV_BUFFER_SIZE))
            elif channel.exit_status_ready():
                break
            else:
                channel.status_event.wait(min(POLL_INTERVAL, remaining))

        # output that arrived together with the exit status
        while channel.recv_ready():
            out.append(channel.recv(RECV_BUFFER_SIZE))
        while channel.recv_stderr_ready():
            err.append(channel.recv_stderr(RECV_BUFFER_SIZE))

        return (
            channel.recv_exit_status(),
            b"".join(out).decode("utf-8", errors="replace"),
            b"".join(err).decode("utf-8", errors="replace"),
        )

    def run(self, command: str, timeout: Optional[float] = None) -> str:
        """
        Run a command on the remote host.

        Args:
            command: Shell command line
            timeout: Seconds to wait for output (defaults to command_timeout)

        Returns:
            The command's standard output.

        Raises:
            QueryError: not connected, timeout or non-zero exit status.
        """
        result = self._exec(command, timeout=timeout)
        if result.rc != 0:
            detail = result.err.strip() or result.out.strip() or "no output"
            raise QueryError(
                f"Command exited with status {result.rc}: {detail}",
                reason=QueryError.COMMAND_FAILED,
                command=command,
            )
        return result.out

    # -------------------------
    # vcgencmd
    # -------------------------

    def find_vcgencmd(self) -> str:
        """Locate vcgencmd in the usual firmware paths or on PATH."""
        probes = " ".join(VCGENCMD_LOCATIONS)
        command = (
            f'for p in {probes}; do [ -x "$p" ] && echo "$p" && exit 0; done; '
            "command -v vcgencmd"
        )
        result = self._exec(command)
        path = result.out.strip().splitlines()[0] if result.out.strip() else ""
        if result.rc != 0 or not path:
            raise QueryError(
                f"vcgencmd not found on {self._hostname}",
                reason=QueryError.COMMAND_FAILED,
            )
        logger.debug(f"Using vcgencmd at {path}")
        return path

    def query_vcgencmd(self, vcgencmd_path: Optional[str] = None) -> VcgencmdBean:
        """Query clocks, core voltage, temperature and firmware version."""
        vcgencmd = shlex.quote(vcgencmd_path or self.find_vcgencmd())
        return VcgencmdBean(
            arm_frequency=parsers.parse_clock(self.run(f"{vcgencmd} measure_clock arm")),
            core_frequency=parsers.parse_clock(self.run(f"{vcgencmd} measure_clock core")),
            core_volts=parsers.parse_volts(self.run(f"{vcgencmd} measure_volts core")),
            cpu_temperature=parsers.parse_temperature(self.run(f"{vcgencmd} measure_temp")),
            version=parsers.parse_firmware_version(self.run(f"{vcgencmd} version")),
        )

    def query_volts(self, vcgencmd_path: str) -> float:
        """Current core voltage."""
        return parsers.parse_volts(self.run(f"{shlex.quote(vcgencmd_path)} measure_volts core"))

    # -------------------------
    # system queries
    # -------------------------

    def query_uptime(self) -> float:
        """Uptime in seconds."""
        return parsers.parse_uptime(self.run(UPTIME_CMD))

    def query_load_average(self, period: LoadAveragePeriod) -> float:
        """Load average of the period divided by the core count, in [0, 1]."""
        return parsers.parse_load_average(self.run(LOAD_AVG_CMD), period)

    def query_cpu_serial(self) -> str:
        return parsers.parse_cpu_serial(self.run(CPUINFO_CMD))

    def query_memory_information(self) -> RaspiMemoryBean:
        return parsers.parse_memory(self.run(MEMINFO_CMD))

    def query_disk_usage(self) -> List[DiskUsageBean]:
        """Usage of every mounted filesystem."""
        # df exits 1 when a single mount is unreadable but still prints the rest
        result = self._exec(DISK_USAGE_CMD)
        if result.rc != 0 and not result.out.strip():
            raise QueryError(
                f"Command exited with status {result.rc}: {result.err.strip()}",
                reason=QueryError.COMMAND_FAILED,
                command=DISK_USAGE_CMD,
            )
        return parsers.parse_disk_usage(result.out)

    def query_distribution_name(self) -> str:
        return parsers.parse_distribution_name(self.run(DISTRIBUTION_CMD))

    def query_system_time(self) -> str:
        """Current remote time in RFC-2822 format."""
        return parsers.parse_system_time(self.run(SYSTEM_TIME_CMD))

    def query_processes(self, show_root_processes: bool) -> List[ProcessBean]:
        command = PROCESSES_ALL_CMD if show_root_processes else PROCESSES_NO_ROOT_CMD
        return parsers.parse_processes(self.run(command))

    def query_network_information(self) -> List[NetworkInterfaceInformation]:
        """Carrier, IPv4 address and wireless link of every non-loopback interface."""
        names = parsers.parse_interface_names(self.run(INTERFACES_CMD))
        wireless = self.run(WIRELESS_CMD)

        interfaces = []
        for name in names:
            quoted = shlex.quote(name)
            carrier = parsers.parse_carrier(
                self.run(f"cat /sys/class/net/{quoted}/carrier 2>/dev/null || echo 0")
            )
            ip_address = parsers.parse_ip_address(
                self.run(f"ip -f inet addr show dev {quoted} 2>/dev/null || true")
            )
            interfaces.append(NetworkInterfaceInformation(
                name=name,
                has_carrier=carrier,
                ip_address=ip_address,
                wlan_info=parsers.parse_wireless(wireless, name),
            ))
        return interfaces

    # -------------------------
    # privileged signals
    # -------------------------

    def send_reboot_signal(self, sudo_password: str) -> None:
        """Reboot the host via ``sudo /sbin/shutdown -r now``."""
        self._send_shutdown(REBOOT_CMD, sudo_password)

    def send_halt_signal(self, sudo_password: str) -> None:
        """Halt the host via ``sudo /sbin/shutdown -h now``."""
        self._send_shutdown(HALT_CMD, sudo_password)

    def _send_shutdown(self, command: str, sudo_password: str) -> None:
        logger.info(f"Sending '{command}' to {self._hostname}")
        result = self._exec(command, input_data=sudo_password + "\n")
        # The session may drop before the exit status arrives
        if result.rc in (0, NO_EXIT_STATUS):
            return
        detail = result.err.strip() or result.out.strip() or f"exit status {result.rc}"
        raise QueryError(
            f"Privileged command rejected: {detail}",
            reason=QueryError.PRIVILEGE_FAILED,
            command=command,
        )
