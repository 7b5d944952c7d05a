"""Click CLI for Hyperbolic GPU.

Commands:
- gpus: List available GPU nodes
- cluster: Show details of one cluster
- rent: Rent GPUs on a node
- instances: List rented instances
- terminate: Terminate a rented instance
- ssh: Run commands on a host over SSH
- instance-ssh: Run commands on a rented instance over SSH
"""

import asyncio
import functools
import json
import logging
import sys
from typing import Any, Dict, Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from hyperbolic_gpu import __version__
from hyperbolic_gpu.client import HyperbolicClient, RentalCandidate
from hyperbolic_gpu.config import Settings
from hyperbolic_gpu.diagnostics import setup_logging
from hyperbolic_gpu.rental import RentalGuard
from hyperbolic_gpu.ssh import AsyncSSHTransport, SessionManager
from hyperbolic_gpu.utils.errors import HyperbolicGPUError
from hyperbolic_gpu.utils.formatting import format_price, format_ram

console = Console()
logger = logging.getLogger(__name__)

EXIT_WORDS = {"exit", "quit", "logout"}


def run_async(coro):
    """Run async function in sync context."""
    return asyncio.run(coro)


def fail(message: str) -> None:
    console.print(f"[red]{message}[/]")
    sys.exit(1)


def parse_filters(pairs: Tuple[str, ...]) -> Dict[str, Any]:
    """Turn KEY=VALUE pairs into a filter dict; values are JSON when possible."""
    filters = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected KEY=VALUE, got '{pair}'", param_hint="--filter")
        try:
            filters[key] = json.loads(value)
        except ValueError:
            filters[key] = value
    return filters


def make_client(ctx) -> HyperbolicClient:
    settings: Settings = ctx.obj["settings"]
    return HyperbolicClient(
        settings.require_api_token(),
        base_url=settings.api_url,
        debug=ctx.obj["debug_http"],
    )


@click.group()
@click.version_option(version=__version__)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--debug-http", is_flag=True, help="Enable verbose API and SSH logging")
@click.pass_context
def cli(ctx, debug: bool, debug_http: bool):
    """Hyperbolic GPU - rent marketplace GPUs and run commands on them."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["debug_http"] = debug_http

    level = "DEBUG" if debug else "INFO"
    setup_logging(level=level, debug_http=debug_http)

    try:
        ctx.obj["settings"] = Settings.from_env()
    except HyperbolicGPUError as e:
        fail(f"Configuration error: {e}")


# Marketplace


@cli.command()
@click.option(
    "--filter",
    "filter_pairs",
    multiple=True,
    metavar="KEY=VALUE",
    help="Marketplace filter, passed to the API unchanged (repeatable)",
)
@click.pass_context
def gpus(ctx, filter_pairs: Tuple[str, ...]):
    """List available GPU nodes."""
    filters = parse_filters(filter_pairs)

    async def _gpus():
        async with make_client(ctx) as client:
            with console.status("Querying marketplace..."):
                nodes = await client.list_available(filters)

        if not nodes:
            console.print(
                "[yellow]No available GPU instances found. "
                "All instances are currently reserved or in use.[/]"
            )
            return

        table = Table(title=f"Available GPU Instances on Hyperbolic ({len(nodes)})")
        table.add_column("Cluster Name")
        table.add_column("Node Name", style="dim")
        table.add_column("GPU Model")
        table.add_column("Available/Total", justify="right")
        table.add_column("VRAM (GB)", justify="right")
        table.add_column("CPU Cores", justify="right")
        table.add_column("RAM", justify="right")
        table.add_column("Storage", justify="right")
        table.add_column("$/hr", justify="right")
        table.add_column("Region")

        for node in nodes:
            table.add_row(
                node.cluster_name,
                node.id,
                ", ".join(node.gpu_models),
                f"{node.available_gpus}/{node.gpus_total}",
                str(node.gpu_vram_gb) if node.gpu_vram_gb is not None else "-",
                str(node.cpu_cores) if node.cpu_cores is not None else "-",
                f"{node.ram_capacity:g}",
                f"{node.storage_capacity:g}",
                format_price(node.price_per_hour),
                node.region or "-",
            )

        console.print(table)
        console.print(
            "To rent an instance: [bold]hyperbolic-gpu rent CLUSTER NODE GPU_COUNT[/]"
        )

    try:
        run_async(_gpus())
    except HyperbolicGPUError as e:
        fail(f"Error listing available GPUs: {e}")


def render_cluster(node: RentalCandidate) -> str:
    """Render the detailed view of a marketplace node."""
    available = node.available_gpus
    availability = "Available" if available > 0 else "Fully Reserved"

    gpu_lines = [
        f"GPU {i}: {gpu.model or 'Unknown'}, VRAM: {format_ram(gpu.ram or 0)}"
        for i, gpu in enumerate(node.hardware.gpus, start=1)
    ] or ["No GPU information available"]

    if node.hardware.cpus:
        cpu = node.hardware.cpus[0]
        cpu_info = f"{cpu.model or 'Unknown'}, {cpu.virtual_cores or 0} virtual cores"
    else:
        cpu_info = "No CPU information available"

    ram_info = (
        format_ram(node.ram_capacity) if node.hardware.ram else "No RAM information available"
    )
    storage_info = (
        f"{node.storage_capacity:g} GB"
        if node.hardware.storage
        else "No storage information available"
    )
    pricing = (
        format_price(node.price_per_hour, node.price_period)
        if node.price_period
        else "Pricing information not available"
    )

    running = [
        f"- Instance ID: {inst.id}, Status: {inst.status}, "
        f"GPUs: {inst.gpu_count}, Storage: {inst.storage_gb:g} GB"
        for inst in node.instances
    ] or ["No running instances"]

    lines = [
        "[bold]Basic Information[/]",
        f"- Node Name: {node.id}",
        f"- Status: {node.status or 'Unknown'} ({availability})",
        f"- Region: {node.region or 'Unknown'}",
        f"- Reserved: {'Yes' if node.reserved else 'No'}",
        f"- Has Persistent Storage: {'Yes' if node.has_persistent_storage else 'No'}",
        "",
        "[bold]Hardware Specifications[/]",
        f"- CPU: {cpu_info}",
        f"- RAM: {ram_info}",
        f"- Storage: {storage_info}",
        f"- Total GPUs: {node.gpus_total}",
        f"- Available GPUs: {available}",
        f"- Reserved GPUs: {node.gpus_reserved}",
        "",
        "[bold]GPU Details[/]",
        *gpu_lines,
        "",
        "[bold]Pricing[/]",
        f"- {pricing}",
        "",
        "[bold]Running Instances[/]",
        *running,
    ]

    if available > 0:
        lines += [
            "",
            f"To rent GPUs from this cluster (up to {available} available):",
            f"  hyperbolic-gpu rent {node.cluster_name} {node.id} 1",
        ]

    return "\n".join(lines)


@cli.command()
@click.argument("cluster_name")
@click.pass_context
def cluster(ctx, cluster_name: str):
    """Show details of a cluster."""

    async def _cluster():
        async with make_client(ctx) as client:
            return await client.get_cluster(cluster_name)

    try:
        node = run_async(_cluster())
    except HyperbolicGPUError as e:
        fail(f"Error getting cluster details: {e}")
        return

    if node is None:
        fail(
            f'Cluster "{cluster_name}" not found. '
            "Please check the cluster name and try again."
        )
        return

    console.print(Panel(render_cluster(node), title=f"Cluster: {cluster_name}"))


@cli.command()
@click.argument("cluster_name")
@click.argument("node_name")
@click.argument("gpu_count", type=click.IntRange(min=1))
@click.option("--no-settle", is_flag=True, help="Skip the post-rental settle delay")
@click.pass_context
def rent(ctx, cluster_name: str, node_name: str, gpu_count: int, no_settle: bool):
    """Rent GPUs on a marketplace node."""

    async def _rent():
        async with make_client(ctx) as client:
            guard = RentalGuard(client)
            with console.status("Checking availability and renting..."):
                outcome = await guard.rent(cluster_name, node_name, gpu_count)

            if not outcome.ok:
                return outcome

            console.print(f"[green]{outcome.message}[/]")
            console.print_json(data=outcome.data.model_dump(exclude_none=True))

            if not no_settle:
                with console.status("Waiting for the instance to come up..."):
                    await guard.settle()
            return outcome

    try:
        outcome = run_async(_rent())
    except HyperbolicGPUError as e:
        fail(f"Error renting GPU instance: {e}")
        return

    if not outcome.ok:
        fail(f"Error renting GPU instance: {outcome.message}")
        return

    console.print(
        "Instance is ready for a session. Find its SSH details with "
        "[bold]hyperbolic-gpu instances[/]."
    )


@cli.command()
@click.pass_context
def instances(ctx):
    """List rented instances."""

    async def _instances():
        async with make_client(ctx) as client:
            return await client.list_instances()

    try:
        rented = run_async(_instances())
    except HyperbolicGPUError as e:
        fail(f"Error listing instances: {e}")
        return

    if not rented:
        console.print("[yellow]No rented instances[/]")
        return

    table = Table(title=f"Rented Instances ({len(rented)})")
    table.add_column("ID")
    table.add_column("Status")
    table.add_column("GPUs", justify="right")
    table.add_column("Started")
    table.add_column("SSH")

    for inst in rented:
        table.add_row(
            inst.id,
            inst.status,
            str(inst.gpu_count),
            inst.start or "-",
            inst.ssh_command or "-",
        )

    console.print(table)


@cli.command()
@click.argument("instance_id")
@click.pass_context
def terminate(ctx, instance_id: str):
    """Terminate a rented instance."""

    async def _terminate():
        async with make_client(ctx) as client:
            return await client.terminate_instance(instance_id)

    try:
        result = run_async(_terminate())
    except HyperbolicGPUError as e:
        fail(f"Error terminating instance: {e}")
        return

    console.print(f"[green]Termination requested for {instance_id}[/]")
    if result:
        console.print_json(data=result)


# SSH


async def read_command(prompt: str) -> Optional[str]:
    """Prompt for a command without blocking the event loop."""
    loop = asyncio.get_running_loop()
    ask = functools.partial(click.prompt, prompt, default="", show_default=False)
    try:
        return await loop.run_in_executor(None, ask)
    except (click.Abort, EOFError):
        return None


async def run_session(
    settings: Settings,
    host: str,
    username: str,
    password: Optional[str],
    key_path: Optional[str],
    port: int,
    timeout: Optional[float],
    commands: Tuple[str, ...],
    command_timeout: Optional[float],
) -> bool:
    """Connect, run commands, disconnect. Returns True if all succeeded."""
    manager = SessionManager(
        AsyncSSHTransport(known_hosts=settings.ssh_known_hosts),
        default_key_path=settings.ssh_private_key_path,
    )

    with console.status(f"Connecting to {host}:{port}..."):
        outcome = await manager.connect(
            host,
            username,
            password=password,
            key_path=key_path,
            port=port,
            timeout=timeout or settings.ssh_connect_timeout,
        )

    if not outcome.ok:
        hint = " (retryable)" if outcome.retryable else ""
        console.print(f"[red]SSH {outcome.kind.value}: {outcome.message}{hint}[/]")
        return False

    console.print(f"[green]{outcome.message}[/]")
    all_ok = True

    try:
        if commands:
            for command in commands:
                console.print(f"[bold]$ {command}[/]")
                result = await manager.execute(command, timeout=command_timeout)
                print_command_outcome(result)
                all_ok = all_ok and result.ok
        else:
            prompt = f"{username}@{host}"
            while True:
                line = await read_command(prompt)
                if line is None or line.strip() in EXIT_WORDS:
                    break
                if not line.strip():
                    continue
                result = await manager.execute(line, timeout=command_timeout)
                print_command_outcome(result)
                if not manager.is_connected():
                    console.print("[red]Session lost[/]")
                    all_ok = False
                    break
    finally:
        await manager.disconnect()
        console.print(manager.describe())

    return all_ok


def print_command_outcome(outcome) -> None:
    if outcome.ok:
        if outcome.message:
            console.print(outcome.message, markup=False, highlight=False, end="")
            if not outcome.message.endswith("\n"):
                console.print()
        return
    console.print(outcome.message, style="red", markup=False, highlight=False)


def ssh_options(func):
    """Options shared by the ssh commands."""
    options = [
        click.option("--password", "-p", envvar="SSH_PASSWORD", help="SSH password (takes precedence over keys)"),
        click.option("--key", "-i", "key_path", help="Private key path (default: SSH_PRIVATE_KEY_PATH or ~/.ssh/id_rsa)"),
        click.option("--timeout", type=float, help="Connection timeout in seconds"),
        click.option("--command", "-c", "commands", multiple=True, help="Command to run (repeatable; interactive if omitted)"),
        click.option("--command-timeout", type=float, help="Per-command timeout in seconds (default: none)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@cli.command()
@click.argument("host")
@click.argument("username")
@click.option("--port", type=int, default=22, help="SSH port")
@ssh_options
@click.pass_context
def ssh(
    ctx,
    host: str,
    username: str,
    port: int,
    password: Optional[str],
    key_path: Optional[str],
    timeout: Optional[float],
    commands: Tuple[str, ...],
    command_timeout: Optional[float],
):
    """Run commands on HOST as USERNAME over SSH."""
    ok = run_async(
        run_session(
            ctx.obj["settings"],
            host,
            username,
            password,
            key_path,
            port,
            timeout,
            commands,
            command_timeout,
        )
    )
    if not ok:
        sys.exit(1)


@cli.command("instance-ssh")
@click.argument("instance_id")
@ssh_options
@click.pass_context
def instance_ssh(
    ctx,
    instance_id: str,
    password: Optional[str],
    key_path: Optional[str],
    timeout: Optional[float],
    commands: Tuple[str, ...],
    command_timeout: Optional[float],
):
    """Run commands on a rented instance over SSH."""

    async def _lookup():
        async with make_client(ctx) as client:
            for inst in await client.list_instances():
                if inst.id == instance_id:
                    return inst
        return None

    try:
        inst = run_async(_lookup())
    except HyperbolicGPUError as e:
        fail(f"Error looking up instance: {e}")
        return

    if inst is None:
        fail(f"Instance {instance_id} not found")
        return

    target = inst.ssh_target()
    if target is None:
        fail(f"Instance {instance_id} has no SSH details yet (status: {inst.status})")
        return

    host, username, port = target
    ok = run_async(
        run_session(
            ctx.obj["settings"],
            host,
            username,
            password,
            key_path,
            port,
            timeout,
            commands,
            command_timeout,
        )
    )
    if not ok:
        sys.exit(1)


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
