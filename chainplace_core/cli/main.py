"""
Chainplace CLI: evaluate placement scoring from the command line.

Usage:
    chainplace-core status                       Show scoring configuration
    chainplace-core admit SOURCE WORKLOAD        Run the admission gate for a workload
    chainplace-core score SOURCE WORKLOAD        Score every node for a workload
    chainplace-core config                       Dump the configuration as JSON
    chainplace-core validate                     Validate the configuration

SOURCE is a YAML/JSON cluster snapshot, or ``kube`` for the cluster of the
current kubeconfig context.
"""

import json
from typing import List, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..cluster import CallContext, ClusterState, InMemoryCluster
from ..config import get_config
from ..errors import ChainplaceError
from ..scheduler import SchedulingFramework
from ..types import Workload

console = Console()
cli = typer.Typer(
    name="chainplace-core",
    help="Topology- and SLO-aware placement scoring for chained workloads.",
    no_args_is_help=True,
)


@cli.command()
def status():
    """Show the scoring and execution configuration."""
    config = get_config()

    scoring_table = Table(show_header=False, box=box.SIMPLE)
    scoring_table.add_column("Setting", style="bold")
    scoring_table.add_column("Value")

    scoring_table.add_row(
        "Node score range",
        f"[{config.scoring.min_node_score}, {config.scoring.max_node_score}]",
    )
    scoring_table.add_row("SLO request offset", str(config.scoring.slo_request_offset))
    scoring_table.add_row("Default namespace", config.scoring.default_namespace)
    scoring_table.add_row("NetworkAware weight", str(config.scoring.network_weight))
    scoring_table.add_row("NetworkSloAware weight", str(config.scoring.slo_weight))
    scoring_table.add_row("Balance weight", str(config.scoring.balance_weight))

    console.print(Panel(scoring_table, title="Scoring Configuration", border_style="green"))

    exec_table = Table(show_header=False, box=box.SIMPLE)
    exec_table.add_column("Setting", style="bold")
    exec_table.add_column("Value")

    exec_table.add_row("Max parallelism", str(config.execution.max_parallelism))
    exec_table.add_row("Read timeout (s)", str(config.execution.read_timeout_seconds))
    exec_table.add_row("Log level", config.logging.log_level)
    exec_table.add_row("Log format", config.logging.log_format)

    console.print(Panel(exec_table, title="Execution Configuration", border_style="blue"))


@cli.command()
def admit(
    source: str = typer.Argument(..., help="Snapshot file or 'kube'"),
    workload_name: str = typer.Argument(..., help="Workload (pod) name"),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Workload namespace"),
):
    """Check whether a workload's upstream pipeline stages are placed."""
    cluster = _load_cluster(source)
    framework = SchedulingFramework(cluster)
    ctx = CallContext.with_timeout(framework.config.execution.read_timeout_seconds)
    workload = _find_workload(cluster, ctx, workload_name, namespace)

    try:
        result = framework.gate.check(ctx, workload)
    except ChainplaceError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    color = "yellow" if result.requeue else "green"
    table = Table(title="Admission", box=box.ROUNDED)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Workload", result.workload)
    table.add_row("Phase", f"[{color}]{result.phase.name}[/{color}]")
    table.add_row("Reason", result.reason)
    table.add_row("Blocking stage keys", ", ".join(result.blocking_keys) or "-")
    console.print(table)


@cli.command()
def score(
    source: str = typer.Argument(..., help="Snapshot file or 'kube'"),
    workload_name: str = typer.Argument(..., help="Workload (pod) name"),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Workload namespace"),
    plugin: Optional[List[str]] = typer.Option(
        None, "--plugin", "-p", help="Only run these plugins (repeatable)"
    ),
    node: Optional[List[str]] = typer.Option(
        None, "--node", help="Candidate nodes (repeatable, default: all nodes)"
    ),
    output_json: bool = typer.Option(False, "--json", help="Output scores as JSON"),
):
    """Run one scheduling cycle for a workload and show every node's scores."""
    cluster = _load_cluster(source)
    framework = SchedulingFramework(cluster)
    if plugin:
        unknown = set(plugin) - {p.name for p in framework.plugins}
        if unknown:
            console.print(f"[red]Error:[/red] unknown plugin(s): {', '.join(sorted(unknown))}")
            raise typer.Exit(code=1)
        framework.plugins = [p for p in framework.plugins if p.name in plugin]

    ctx = CallContext.with_timeout(framework.config.execution.read_timeout_seconds)
    workload = _find_workload(cluster, ctx, workload_name, namespace)

    try:
        result = framework.run_cycle(workload, candidate_nodes=node or None, ctx=ctx)
    except ChainplaceError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    weights = framework.weights
    totals = result.weighted_totals(weights)

    if output_json:
        data = {
            "workload": result.workload,
            "correlation_id": result.correlation_id,
            "admission": result.admission.phase.name,
            "plugins": {
                name: {
                    "raw": {s.name: s.score for s in plugin_result.raw},
                    "normalized": {s.name: s.score for s in plugin_result.normalized},
                    "failures": {n: str(e) for n, e in plugin_result.failures.items()},
                }
                for name, plugin_result in result.plugins.items()
            },
            "totals": totals,
            "best_node": result.best_node(weights),
        }
        console.print_json(json.dumps(data))
        return

    if not result.scored:
        console.print(
            Panel(
                f"{result.workload} is {result.admission.phase.name}: {result.admission.reason}",
                title="Not Scored",
                border_style="yellow",
            )
        )
        return

    table = Table(title=f"Node Scores for {result.workload}", box=box.ROUNDED)
    table.add_column("Node", style="bold")
    for name in result.plugins:
        table.add_column(f"{name}\nraw / normalized")
    table.add_column("Weighted total")

    node_names = sorted({s.name for r in result.plugins.values() for s in r.raw} | set(result.failed_nodes))
    for node_name in node_names:
        row = [node_name]
        for plugin_result in result.plugins.values():
            row.append(_score_cell(plugin_result, node_name))
        row.append(f"{totals[node_name]:.1f}" if node_name in totals else "[red]excluded[/red]")
        table.add_row(*row)

    console.print(table)
    best = result.best_node(weights)
    if best:
        console.print(f"\n[green]Best node:[/green] {best}")


@cli.command(name="config")
def show_config():
    """Dump the effective configuration as JSON."""
    console.print_json(json.dumps(get_config().to_dict()))


@cli.command()
def validate():
    """Validate the configuration."""
    config = get_config()

    console.print("[bold]Running validation checks...[/bold]\n")
    errors = config.validate()
    for err in errors:
        console.print(f"  [red]FAIL[/red] {err}")

    console.print()
    if errors:
        console.print(f"[red]Validation failed with {len(errors)} error(s).[/red]")
        raise typer.Exit(code=1)
    console.print("[green]All validation checks passed.[/green]")


def _load_cluster(source: str) -> ClusterState:
    if source == "kube":
        from ..kube import KubernetesCluster

        return KubernetesCluster.from_environment()

    try:
        return InMemoryCluster.from_file(source)
    except (OSError, ValueError, KeyError) as e:
        console.print(f"[red]Error:[/red] cannot load snapshot {source}: {e}")
        raise typer.Exit(code=1)


def _find_workload(
    cluster: ClusterState, ctx: CallContext, name: str, namespace: Optional[str]
) -> Workload:
    namespace = namespace or get_config().scoring.default_namespace
    try:
        matches = [w for w in cluster.list_workloads(ctx, namespace, {}) if w.name == name]
    except ChainplaceError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    if not matches:
        console.print(f"[red]Error:[/red] workload {namespace}/{name} not found")
        raise typer.Exit(code=1)
    return matches[0]


def _score_cell(plugin_result, node_name: str) -> str:
    if node_name in plugin_result.failures:
        return "[red]error[/red]"
    raw = {s.name: s.score for s in plugin_result.raw}
    normalized = {s.name: s.score for s in plugin_result.normalized}
    return f"{raw[node_name]} / {normalized[node_name]}"


if __name__ == "__main__":
    cli()
