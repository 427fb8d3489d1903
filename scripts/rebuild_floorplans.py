# scripts/rebuild_floorplans.py
"""CLI for recomputing connections, walls and containment of saved floor plans."""
from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError
from tqdm import tqdm

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from floorcore.config import EngineConfig
from floorcore.editor import FloorPlanEditor
from floorcore.models import FloorPlan

logger = logging.getLogger(__name__)


def rebuild_single(json_path: Path, output_dir: Path, config: EngineConfig) -> dict:
    plan = FloorPlan.model_validate_json(json_path.read_text())
    editor = FloorPlanEditor(plan, config)
    editor.rebuild()

    out_path = output_dir / json_path.name
    out_path.write_text(plan.model_dump_json(indent=2))
    return {
        "rooms": len(plan.rooms),
        "walls": len(plan.walls),
        "connections": len(plan.connections),
        "joints": len(editor.joints()),
    }


@click.command()
@click.option("--input-dir", type=click.Path(exists=True, file_okay=False), required=True)
@click.option("--output-dir", type=click.Path(), required=True)
@click.option("--wall-thickness", type=float, default=None, help="Default wall thickness (cm)")
@click.option("--wall-height", type=float, default=None, help="Default wall height (cm)")
@click.option("--direct-threshold", type=float, default=None, help="Gap below which rooms merge (cm)")
@click.option("--joint-method", type=click.Choice(["single_link", "union_find"]), default="single_link")
@click.option("--verbose", "-v", is_flag=True)
def cli(input_dir, output_dir, wall_thickness, wall_height, direct_threshold, joint_method, verbose):
    """Rebuild derived geometry for every floor plan JSON in a directory."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides = {"joint_method": joint_method}
    if wall_thickness is not None:
        overrides["wall_thickness"] = wall_thickness
    if wall_height is not None:
        overrides["wall_height"] = wall_height
    if direct_threshold is not None:
        overrides["direct_snap_threshold"] = direct_threshold
    try:
        config = EngineConfig(**overrides)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc

    inp = Path(input_dir)
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    json_files = sorted(inp.glob("*.json"))
    if not json_files:
        click.echo("No JSON files found.")
        return

    totals = {"rooms": 0, "walls": 0, "connections": 0, "joints": 0}
    failed = 0
    for jf in tqdm(json_files, desc="Rebuilding"):
        try:
            stats = rebuild_single(jf, out, config)
        except ValidationError as exc:
            logger.error("skipping %s: %s", jf.name, exc)
            failed += 1
            continue
        for key, value in stats.items():
            totals[key] += value

    click.echo(
        f"Rebuilt {len(json_files) - failed} plans to {out}: "
        f"{totals['rooms']} rooms, {totals['walls']} walls, "
        f"{totals['connections']} connections, {totals['joints']} joints"
    )
    if failed:
        click.echo(f"Skipped {failed} invalid files", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
