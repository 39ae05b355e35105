# ciel/cli/definitions.py
import json

import typer
from rich import print
from rich.console import Console
from rich.table import Table

from ciel.core.definitions import DEFINITIONS_DICT, AttractorDefinition

console = Console()
definitions_app = typer.Typer(help="View simulation definitions (equations, parameters, actions).")


@definitions_app.command("list")
def list_definitions():
    """List every simulation with its parameters and actions."""
    table = Table(title="Ciel Simulations")
    table.add_column("Id", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Subtitle", style="dim")
    table.add_column("Parameters", style="green")
    table.add_column("Actions", style="magenta")

    for defn in DEFINITIONS_DICT.values():
        params = ", ".join(f"{p.key}={p.default:g}" for p in defn.params)
        table.add_row(defn.id, defn.name, defn.subtitle, params, ", ".join(defn.action_ids))
    console.print(table)


def _to_dict(defn) -> dict:
    data = defn.model_dump(exclude={"derivative"})
    if isinstance(defn, AttractorDefinition):
        data["derivative"] = defn.derivative.__name__
    return data


@definitions_app.command("show")
def show_definition(
    sim_id: str = typer.Argument(..., metavar="ID", help="Simulation id"),
    format: str = typer.Option("plain", help="Output format: plain|json|md")
):
    """Show all metadata for a simulation."""
    defn = DEFINITIONS_DICT.get(sim_id)
    if not defn:
        print(f"[red]Simulation not found:[/red] {sim_id}")
        raise typer.Exit(1)
    if format == "json":
        typer.echo(json.dumps(_to_dict(defn), indent=2, ensure_ascii=False))
    elif format == "md":
        lines = [f"## {defn.name}", "", f"*{defn.subtitle}*", ""]
        lines += [f"- `{eq}`" for eq in defn.equations]
        lines += ["", "| Key | Symbol | Min | Max | Step | Default |", "|---|---|---|---|---|---|"]
        lines += [f"| {p.key} | {p.symbol} | {p.min:g} | {p.max:g} | {p.step:g} | {p.default:g} |" for p in defn.params]
        lines += ["", "**Actions:** " + ", ".join(a.label for a in defn.actions)]
        if isinstance(defn, AttractorDefinition):
            bif = defn.bifurcation
            lines.append(f"**Bifurcation:** {bif.param_key} ∈ {list(bif.range)}, component {'xyz'[bif.component]}")
        print("\n".join(lines))
    else:
        print(f"[bold cyan]{defn.name}[/bold cyan] ({defn.id}) - {defn.subtitle}")
        for eq in defn.equations:
            print(f"  {eq}")
        for p in defn.params:
            print(f"  {p.key} ({p.symbol}): default {p.default:g}, range [{p.min:g}, {p.max:g}], step {p.step:g}")
        print(f"  actions: {', '.join(defn.action_ids)}")
