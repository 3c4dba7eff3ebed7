"""The 'list' command group."""

import json
import logging
from pathlib import Path
from typing import Union

import typer
from rich.table import Table

from rsc_report.cli.common import console, load_config_file, merge_config, setup_logging
from rsc_report.recipe_loader import RecipeLoader

list_app = typer.Typer(
    name="list",
    help="List available resources.",
    add_completion=False,
)


@list_app.command()
def recipes(
    recipes_dir: Union[Path, None] = typer.Option(
        None,
        "--recipes",
        "-r",
        help="Path to an extra recipes directory",
        dir_okay=True,
        file_okay=False,
    ),
    no_bundled_recipes: bool = typer.Option(
        False, "--no-bundled-recipes", help="Disable bundled recipes shipped with the package."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """List all available recipes."""
    setup_logging(verbose)
    logger = logging.getLogger(__name__)

    directory = merge_config(recipes_dir, "RSC_RECIPES_DIR", "recipes_dir", None, load_config_file())
    loader = RecipeLoader(directory, use_bundled=not no_bundled_recipes)
    recipes_list = loader.load_recipes()
    logger.debug(f"Loaded {len(recipes_list)} recipes")

    if output_json:
        data = [
            {
                "name": r.name,
                "description": r.description,
                "operation": r.query.operation_name,
                "fields": [f.output for f in r.fields],
            }
            for r in recipes_list
        ]
        console.print_json(json.dumps(data))
        return

    if not recipes_list:
        console.print("[yellow]No recipes found[/yellow]")
        return

    table = Table(title=f"Available Recipes ({len(recipes_list)} found)")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Operation", style="dim")
    table.add_column("Description")
    for recipe in recipes_list:
        table.add_row(recipe.name, recipe.query.operation_name, recipe.description or "")
    console.print(table)
