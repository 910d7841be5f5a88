"""
PiCheck CLI - Command Line Interface

Usage:
    picheck status <target>          # Query everything and print tables
    picheck run <target> <command>   # Run a single command
    picheck reboot <target>          # sudo /sbin/shutdown -r now
    picheck halt <target>            # sudo /sbin/shutdown -h now
    picheck hosts                    # List inventory hosts

TARGET is a host name from the inventory file or user@host[:port].
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from picheck import __version__
from picheck.config import DEFAULT_INVENTORY, HostConfig, Inventory, load_inventory
from picheck.core.errors import QueryError
from picheck.remote.query_service import QueryService

console = Console()

MAX_PROCESSES_SHOWN = 20


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    # paramiko's transport debug output drowns ours
    logging.getLogger("paramiko").setLevel(logging.WARNING)


def _load_inventory(config: Optional[str]) -> Inventory:
    if config:
        return load_inventory(Path(config))
    default = Path(DEFAULT_INVENTORY)
    if default.exists():
        return load_inventory(default)
    return Inventory()


def _resolve_host(target: str, config: Optional[str], key: Optional[str]) -> HostConfig:
    try:
        inventory = _load_inventory(config)
        return inventory.resolve(target, Path(key).expanduser() if key else None)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)


def _connect(host: HostConfig, ask_passphrase: bool) -> QueryService:
    """Connect with the host's key file, or prompt for a password."""
    service = host.create_service()
    if host.key_file:
        if ask_passphrase:
            passphrase = click.prompt("Key passphrase", hide_input=True)
            service.connect_with_key_and_passphrase(str(host.key_file), passphrase)
        else:
            service.connect_with_key(str(host.key_file))
    else:
        password = click.prompt(f"Password for {host.connection_string}", hide_input=True)
        service.connect(password)
    return service


def _format_bytes(value: Optional[int]) -> str:
    if value is None:
        return "-"
    size = float(value)
    for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
        if size < 1024 or unit == "TiB":
            return f"{size:.1f} {unit}" if unit != "B" else f"{int(size)} B"
        size /= 1024


def _format_duration(seconds: Optional[float]) -> str:
    if seconds is None:
        return "-"
    total = int(seconds)
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)
    if days:
        return f"{days}d {hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def _host_options(func):
    """Options shared by every command that connects to a host."""
    func = click.option("--ask-passphrase", is_flag=True,
                        help="Prompt for the private key passphrase")(func)
    func = click.option("--key", "-k", type=click.Path(exists=True, dir_okay=False),
                        help="SSH private key file")(func)
    func = click.option("--config", "-c", type=click.Path(),
                        help=f"Host inventory file (default: ./{DEFAULT_INVENTORY})")(func)
    func = click.option("--verbose", "-v", is_flag=True, help="Verbose output")(func)
    return func


@click.group()
@click.version_option(version=__version__, prog_name="picheck")
def main():
    """PiCheck - Remote monitoring for Raspberry Pi and other Linux boards

    Query temperature, clocks, load, memory, disks, processes and network
    over SSH, and send reboot/halt signals.
    """
    pass


@main.command()
@click.argument("target")
@_host_options
@click.option("--output", "-o", type=click.Path(dir_okay=False),
              help="Write the snapshot to a .json or .yaml file")
@click.option("--root", "show_root", is_flag=True, help="Include processes owned by root")
def status(target: str, verbose: bool, config: Optional[str], key: Optional[str],
           ask_passphrase: bool, output: Optional[str], show_root: bool):
    """Query every metric of a host and print a summary.

    \b
    Examples:
        picheck status pi@raspberrypi.local
        picheck status kitchen-pi --output kitchen.json
        picheck status admin@garage.local:2222 --key ~/.ssh/id_ed25519 -v
    """
    from picheck.remote.snapshot import collect_snapshot

    _setup_logging(verbose)
    host = _resolve_host(target, config, key)

    console.print(f"\n[bold blue]PiCheck Status[/bold blue]")
    console.print(f"Host: [cyan]{host.connection_string}[/cyan]\n")

    try:
        with _connect(host, ask_passphrase) as service:
            with console.status("Querying host..."):
                snapshot = collect_snapshot(
                    service,
                    show_root_processes=show_root,
                    vcgencmd_path=host.vcgencmd_path,
                )
    except QueryError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    overview = Table(title="System")
    overview.add_column("Metric", style="cyan")
    overview.add_column("Value", style="green")
    overview.add_row("Distribution", snapshot.distribution or "-")
    overview.add_row("System Time", snapshot.system_time or "-")
    overview.add_row("Uptime", _format_duration(snapshot.uptime_seconds))
    overview.add_row("CPU Serial", snapshot.cpu_serial or "-")
    for label, value in snapshot.load_average.items():
        overview.add_row(f"Load ({label})", f"{value * 100:.0f}%")
    if snapshot.memory:
        overview.add_row(
            "Memory",
            f"{_format_bytes(snapshot.memory.used_bytes)} / "
            f"{_format_bytes(snapshot.memory.total_bytes)} "
            f"({snapshot.memory.percent_used}%)",
        )
    if snapshot.vcgencmd:
        vc = snapshot.vcgencmd
        overview.add_row("CPU Temperature", f"{vc.cpu_temperature:.1f} °C")
        overview.add_row("ARM Clock", f"{vc.arm_frequency / 1_000_000:.0f} MHz")
        overview.add_row("Core Clock", f"{vc.core_frequency / 1_000_000:.0f} MHz")
        overview.add_row("Core Voltage", f"{vc.core_volts:.2f} V")
        overview.add_row("Firmware", vc.version)
    console.print(overview)

    if snapshot.disks:
        disks = Table(title="Disks")
        disks.add_column("Filesystem", style="cyan")
        disks.add_column("Mounted On")
        disks.add_column("Size", justify="right")
        disks.add_column("Used", justify="right")
        disks.add_column("Free", justify="right")
        disks.add_column("Use%", justify="right")
        for disk in snapshot.disks:
            color = "red" if disk.used_percent >= 90 else "green"
            disks.add_row(
                disk.filesystem,
                disk.mounted_on,
                _format_bytes(disk.size_bytes),
                _format_bytes(disk.used_bytes),
                _format_bytes(disk.available_bytes),
                f"[{color}]{disk.used_percent}%[/{color}]",
            )
        console.print(disks)

    if snapshot.network:
        network = Table(title="Network")
        network.add_column("Interface", style="cyan")
        network.add_column("Link", justify="center")
        network.add_column("IPv4")
        network.add_column("WLAN")
        for iface in snapshot.network:
            link = "[green]up[/green]" if iface.has_carrier else "[red]down[/red]"
            wlan = "-"
            if iface.wlan_info:
                wlan = f"{iface.wlan_info.link_quality}% / {iface.wlan_info.signal_level} dBm"
            network.add_row(iface.name, link, iface.ip_address or "-", wlan)
        console.print(network)

    if snapshot.processes is not None and verbose:
        processes = Table(title="Processes")
        processes.add_column("PID", justify="right", style="cyan")
        processes.add_column("User")
        processes.add_column("TTY")
        processes.add_column("Time")
        processes.add_column("Command")
        for proc in snapshot.processes[:MAX_PROCESSES_SHOWN]:
            processes.add_row(str(proc.pid), proc.user, proc.tty, proc.cpu_time, proc.command)
        console.print(processes)
        if len(snapshot.processes) > MAX_PROCESSES_SHOWN:
            console.print(f"  ... and {len(snapshot.processes) - MAX_PROCESSES_SHOWN} more")
    elif snapshot.processes is not None:
        console.print(f"Processes: {len(snapshot.processes)}")

    if snapshot.errors:
        console.print(f"\n[bold yellow]Failed queries:[/bold yellow]")
        for name, message in snapshot.errors.items():
            console.print(f"  [yellow]{name}[/yellow]: {message}")

    if output:
        from picheck.exporters import export_snapshot_json, export_snapshot_yaml

        output_path = Path(output)
        if output_path.suffix.lower() in (".yaml", ".yml"):
            result = export_snapshot_yaml(snapshot, output_path)
        else:
            result = export_snapshot_json(snapshot, output_path)

        if result.success:
            console.print(f"\n[green]Snapshot saved to: {result.output_path}[/green]")
        else:
            console.print(f"\n[bold red]Export failed:[/bold red] {result.error}")
            sys.exit(1)


@main.command()
@click.argument("target")
@click.argument("command")
@_host_options
@click.option("--timeout", "-t", type=int, default=None,
              help="Seconds to wait for the command (default: host timeout)")
def run(target: str, command: str, verbose: bool, config: Optional[str], key: Optional[str],
        ask_passphrase: bool, timeout: Optional[int]):
    """Run COMMAND on a host and print its output.

    \b
    Examples:
        picheck run kitchen-pi "uname -a"
        picheck run pi@raspberrypi.local "vcgencmd get_throttled" -t 5
    """
    _setup_logging(verbose)
    host = _resolve_host(target, config, key)

    try:
        with _connect(host, ask_passphrase) as service:
            output = service.run(command, timeout=timeout)
    except QueryError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    click.echo(output, nl=not output.endswith("\n"))


def _send_signal(action: str, target: str, verbose: bool, config: Optional[str],
                 key: Optional[str], ask_passphrase: bool, yes: bool) -> None:
    _setup_logging(verbose)
    host = _resolve_host(target, config, key)

    if not yes:
        click.confirm(f"Really {action} {host.hostname}?", abort=True)

    try:
        with _connect(host, ask_passphrase) as service:
            sudo_password = click.prompt(f"sudo password for {host.username}", hide_input=True)
            if action == "reboot":
                service.send_reboot_signal(sudo_password)
            else:
                service.send_halt_signal(sudo_password)
    except QueryError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    console.print(f"[bold green]{action.capitalize()} signal sent to {host.hostname}[/bold green]")


@main.command()
@click.argument("target")
@_host_options
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
def reboot(target: str, verbose: bool, config: Optional[str], key: Optional[str],
           ask_passphrase: bool, yes: bool):
    """Reboot a host (sudo /sbin/shutdown -r now)."""
    _send_signal("reboot", target, verbose, config, key, ask_passphrase, yes)


@main.command()
@click.argument("target")
@_host_options
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
def halt(target: str, verbose: bool, config: Optional[str], key: Optional[str],
         ask_passphrase: bool, yes: bool):
    """Halt a host (sudo /sbin/shutdown -h now)."""
    _send_signal("halt", target, verbose, config, key, ask_passphrase, yes)


@main.command()
@click.option("--config", "-c", type=click.Path(),
              help=f"Host inventory file (default: ./{DEFAULT_INVENTORY})")
@click.option("--example", is_flag=True, help="Print an example inventory file")
def hosts(config: Optional[str], example: bool):
    """List the hosts of the inventory file."""
    from picheck.config import create_example_inventory

    if example:
        click.echo(create_example_inventory(), nl=False)
        return

    try:
        inventory = _load_inventory(config)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    if not inventory.hosts:
        console.print("[yellow]No hosts configured[/yellow]")
        console.print(f"Create ./{DEFAULT_INVENTORY} (see: picheck hosts --example)")
        return

    table = Table(title=f"Hosts ({inventory.source})")
    table.add_column("Name", style="cyan")
    table.add_column("Connection")
    table.add_column("Auth")
    table.add_column("Timeout", justify="right")
    for name in inventory.names():
        host = inventory.hosts[name]
        auth = f"key {host.key_file}" if host.key_file else "password"
        table.add_row(name, host.connection_string, auth, f"{host.timeout}s")
    console.print(table)


if __name__ == "__main__":
    main()
