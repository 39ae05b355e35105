# src/ciel/cli/main.py
import typer

from ciel.cli.definitions import definitions_app
from ciel.cli.run import run_bifurcation, run_simulation
from ciel.core.logging import configure_console

app = typer.Typer(
    help="Ciel: real-time simulation engines CLI",
    context_settings={"help_option_names": ["-h", "--help"]}
)

# Add sub-commands
app.add_typer(definitions_app, name="definitions")
app.command("run")(run_simulation)
app.command("bifurcation")(run_bifurcation)

@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
    version: bool = typer.Option(False, "--version", help="Show version and exit")
):
    """
    Ciel: chaotic attractors, N-body gravity, gravitational lensing and 4D geometry.

    Use 'ciel COMMAND --help' to see options for specific commands.
    """
    if version:
        from ciel import __version__
        typer.echo(f"Ciel version {__version__}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    configure_console("DEBUG" if verbose else "INFO")

    # Store global options in context for sub-commands to access
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose

if __name__ == "__main__":
    app()
