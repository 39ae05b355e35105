"""
Headless execution commands: drive an engine frame by frame into a raster,
or run an offline bifurcation sweep.
"""
from pathlib import Path
from typing import List, Optional

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from tqdm import tqdm

from ciel.cli.common import parse_seed, resolve_config_path, resolve_output_path
from ciel.core.config import BifurcationConfig, RunConfig, load_config
from ciel.core.logging import logger, setup_logfile
from ciel.core.loop import ManualFrameDriver
from ciel.engines.bifurcation import bifurcation_to_dataframe, compute_bifurcation, plot_bifurcation
from ciel.engines.factory import create_engine
from ciel.render.raster import RasterSurface

console = Console()


def run_simulation(
    simulation: str = typer.Argument(..., help="Simulation id (see `ciel definitions list`)"),
    frames: Optional[int] = typer.Option(None, "--frames", "-n", help="Frames to drive before the snapshot"),
    width: Optional[int] = typer.Option(None, "--width", help="Surface width in pixels"),
    height: Optional[int] = typer.Option(None, "--height", help="Surface height in pixels"),
    seed: Optional[str] = typer.Option(None, "--seed", help="Random seed (integer or 'random' for time-based)"),
    param: Optional[List[str]] = typer.Option(None, "--param", "-p", help="Parameter override key=value (repeatable)"),
    action: Optional[List[str]] = typer.Option(None, "--action", "-a", help="Action id fired before the first frame (repeatable)"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file path (default: auto-detect)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory (default: outputs/run/<timestamp>)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be done without executing"),
):
    """Run one engine headlessly and save the final frame."""
    try:
        config_path = resolve_config_path(config, "run")
        overrides = [f"simulation={simulation}"]
        for key, value in (("frames", frames), ("width", width), ("height", height), ("seed", parse_seed(seed))):
            if value is not None:
                overrides.append(f"{key}={value}")
        for item in param or []:
            if "=" not in item:
                raise typer.BadParameter(f"--param must look like key=value, got: {item}")
            overrides.append(f"params.{item}")
        cfg = load_config(config_path, RunConfig, overrides)
        if action:
            cfg = RunConfig.model_validate({**cfg.model_dump(), "actions": [*cfg.actions, *action]})
    except (typer.BadParameter, FileNotFoundError, ValueError, KeyError) as e:
        console.print(f"[bold red]✗ Invalid run configuration: {escape(str(e))}[/bold red]")
        raise typer.Exit(1)

    table = Table(title=f"ciel run {cfg.simulation}", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Config", str(config_path or "(defaults)"))
    table.add_row("Surface", f"{cfg.width}x{cfg.height}")
    table.add_row("Frames", f"{cfg.frames} @ {cfg.fps:g} fps")
    table.add_row("Seed", str(cfg.seed))
    table.add_row("Params", ", ".join(f"{k}={v:g}" for k, v in cfg.params.items()) or "(defaults)")
    table.add_row("Actions", ", ".join(cfg.actions) or "-")
    console.print(table)

    if dry_run:
        console.print("[yellow]DRY RUN - not executing[/yellow]")
        return

    output_path = resolve_output_path(output or cfg.output_dir, "run")
    log_sink = setup_logfile(str(output_path / "run.log"))
    surface = RasterSurface(cfg.width, cfg.height)
    driver = ManualFrameDriver(frame_interval_ms=1000.0 / cfg.fps)
    engine = create_engine(cfg.simulation, surface, cfg.params, scheduler=driver, seed=cfg.seed)
    try:
        for action_id in cfg.actions:
            result = engine.action(action_id)
            logger.info(f"Action '{action_id}' -> {result}")

        engine.start()
        for _ in tqdm(range(cfg.frames), desc=cfg.simulation, unit="frame"):
            driver.run_frame()
        engine.stop()

        frame_path = surface.save(output_path / "frame.png")
        with open(output_path / "params.yml", "w") as f:
            yaml.safe_dump({
                "simulation": cfg.simulation,
                "seed": cfg.seed,
                "width": cfg.width,
                "height": cfg.height,
                "frames_drawn": engine.frame_count,
                "params": dict(engine.params),
                "actions": list(cfg.actions),
            }, f, sort_keys=False)
    finally:
        engine.destroy()
        logger.remove(log_sink)

    console.print(f"[bold green]✓ {engine.frame_count} frames rendered[/bold green] -> {frame_path}")


def run_bifurcation(
    attractor: str = typer.Argument(..., help="Attractor id (lorenz, aizawa, thomas)"),
    steps: Optional[int] = typer.Option(None, "--steps", help="Parameter intervals in the sweep"),
    seed: Optional[str] = typer.Option(None, "--seed", help="Random seed (integer or 'random' for time-based)"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file path (default: auto-detect)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory (default: outputs/bifurcation/<timestamp>)"),
):
    """Sweep an attractor parameter and save the bifurcation diagram."""
    try:
        config_path = resolve_config_path(config, "bifurcation")
        overrides = [f"attractor={attractor}"]
        parsed_seed = parse_seed(seed)
        if steps is not None:
            overrides.append(f"steps={steps}")
        if parsed_seed is not None:
            overrides.append(f"seed={parsed_seed}")
        cfg = load_config(config_path, BifurcationConfig, overrides)
    except (typer.BadParameter, FileNotFoundError, ValueError, KeyError) as e:
        console.print(f"[bold red]✗ Invalid bifurcation configuration: {escape(str(e))}[/bold red]")
        raise typer.Exit(1)

    output_path = resolve_output_path(output or cfg.output_dir, "bifurcation")
    log_sink = setup_logfile(str(output_path / "bifurcation.log"))
    console.print(f"[bold green]Sweeping {cfg.attractor}[/bold green] ({cfg.steps + 1} samples)")

    try:
        points = compute_bifurcation(
            cfg.attractor, steps=cfg.steps, warmup=cfg.warmup, collect=cfg.collect, seed=cfg.seed,
        )
        df = bifurcation_to_dataframe(points)
        csv_path = output_path / "bifurcation.csv"
        df.to_csv(csv_path, index=False)
        plot_path = plot_bifurcation(points, cfg.attractor, output_path / "bifurcation.png")
    finally:
        logger.remove(log_sink)

    console.print(f"[bold green]✓ {len(df)} maxima[/bold green]")
    console.print(f"Data: {csv_path}")
    console.print(f"Plot: {plot_path}")
