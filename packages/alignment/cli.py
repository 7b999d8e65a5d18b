"""CLI entry-point for the wall alignment engine."""

from __future__ import annotations

import json
import logging

import click

from packages.alignment.calculator import AlignmentError, calculate_wall_alignment
from packages.alignment.quality import get_quality_color, get_quality_description, validate_alignment
from packages.alignment.roomplan import RoomPlanWalls, load_roomplan_walls
from packages.alignment.selection import DEFAULT_MAX_CRITICAL_WALLS, score_walls, select_critical_walls
from packages.core.types import Wall


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log debug output.")
def main(verbose: bool):
    """Align 3D models with scanned walls."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s | %(name)s | %(message)s",
    )


def _load(path: str) -> RoomPlanWalls:
    try:
        return load_roomplan_walls(path)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc


def _index_of(walls: list[Wall], wall_id: str, label: str) -> int:
    for i, wall in enumerate(walls):
        if wall.id == wall_id:
            return i
    raise click.BadParameter(f"no usable wall with id '{wall_id}'", param_hint=label)


@main.command()
@click.argument("export_file", type=click.Path(exists=True, dir_okay=False))
def walls(export_file: str):
    """List the usable walls of a RoomPlan export."""
    click.echo(_load(export_file).model_dump_json(indent=2))


@main.command()
@click.argument("export_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--primary", "primary_id", required=True, help="Id of the wall selected first.")
@click.option(
    "--max-count", default=DEFAULT_MAX_CRITICAL_WALLS, show_default=True,
    help="Walls to select, including the primary.",
)
def critical(export_file: str, primary_id: str, max_count: int):
    """Rank the walls that best cross-check an alignment on PRIMARY."""
    model_walls = _load(export_file).walls
    primary = _index_of(model_walls, primary_id, "--primary")
    selected = select_critical_walls(primary, model_walls, max_count)
    scores = score_walls(primary, model_walls)
    click.echo(json.dumps(
        {
            "primary": primary_id,
            "selected": [model_walls[i].id for i in selected],
            "scores": [s.model_dump() for s in scores],
        },
        indent=2,
    ))


@main.command()
@click.argument("model_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("scan_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--virtual", "virtual_id", required=True, help="Wall id in MODEL_FILE.")
@click.option("--real", "real_id", required=True, help="Wall id in SCAN_FILE.")
def align(model_file: str, scan_file: str, virtual_id: str, real_id: str):
    """Compute the transform placing MODEL_FILE's wall onto SCAN_FILE's wall."""
    model_walls = _load(model_file).walls
    scan_walls = _load(scan_file).walls
    virtual = model_walls[_index_of(model_walls, virtual_id, "--virtual")]
    real = scan_walls[_index_of(scan_walls, real_id, "--real")]

    try:
        config = calculate_wall_alignment(virtual, real)
    except AlignmentError as exc:
        raise click.ClickException(str(exc)) from exc
    validation = validate_alignment(config)
    click.echo(json.dumps(
        {
            "alignment": config.model_dump(),
            "validation": validation.model_dump(mode="json"),
            "description": get_quality_description(validation),
            "color": get_quality_color(validation),
        },
        indent=2,
    ))


if __name__ == "__main__":
    main()
