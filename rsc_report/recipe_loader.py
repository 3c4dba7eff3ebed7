# Copyright (c) 2026 rsc-report contributors
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

"""Recipe loader for YAML report definitions.

Recipes come from two places:

1. **Bundled recipes** shipped in the ``rsc_report.recipes`` package,
   discovered via :mod:`importlib.resources`.
2. **User recipes** from a directory given by ``--recipes`` or the
   ``recipes_dir`` config setting.

Bundled recipes load first; a user recipe whose name matches a bundled one
(case-insensitive) replaces it.
"""

import importlib.resources
import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from rsc_report.errors import RSCReportError
from rsc_report.mapper import RecordMapper
from rsc_report.models import Recipe


class RecipeLoader:
    """Loader for YAML recipe files."""

    def __init__(self, recipes_dir: str | Path | None = None, *, use_bundled: bool = True) -> None:
        self.recipes_dir: Path | None = Path(recipes_dir) if recipes_dir else None
        self.use_bundled = use_bundled
        self.logger = logging.getLogger(__name__)

    def load_recipes(self) -> list[Recipe]:
        """Load bundled recipes, then layer user recipes on top."""
        recipes_by_name: dict[str, Recipe] = {}

        if self.use_bundled:
            for recipe in self._load_bundled_recipes():
                recipes_by_name[recipe.name.lower()] = recipe

        if self.recipes_dir is not None:
            for recipe in self._load_directory_recipes(self.recipes_dir):
                if recipe.name.lower() in recipes_by_name:
                    self.logger.debug(f"User recipe overrides bundled: {recipe.name}")
                recipes_by_name[recipe.name.lower()] = recipe

        return sorted(recipes_by_name.values(), key=lambda r: r.name.lower())

    def get_recipe(self, name: str) -> Recipe:
        """Return the recipe called ``name`` (case-insensitive)."""
        for recipe in self.load_recipes():
            if recipe.name.lower() == name.lower():
                return recipe
        raise RSCReportError(f"Recipe not found: {name}")

    def _load_bundled_recipes(self) -> list[Recipe]:
        recipes: list[Recipe] = []
        try:
            package = importlib.resources.files("rsc_report.recipes")
        except (ModuleNotFoundError, TypeError):
            self.logger.warning("Bundled recipes package not found")
            return recipes

        for item in package.iterdir():
            name = str(item.name)
            if not name.endswith((".yaml", ".yml")) or name.startswith("_"):
                continue
            try:
                recipe = self._parse(yaml.safe_load(item.read_text(encoding="utf-8")), name)
            except (yaml.YAMLError, ValidationError) as e:
                self.logger.error(f"Failed to load bundled recipe {name}: {e}")
                continue
            if recipe:
                recipes.append(recipe)
        return recipes

    def _load_directory_recipes(self, directory: Path) -> list[Recipe]:
        recipes: list[Recipe] = []
        if not directory.exists():
            self.logger.warning(f"Recipes directory does not exist: {directory}")
            return recipes

        yaml_files = sorted(list(directory.rglob("*.yaml")) + list(directory.rglob("*.yml")))
        if not yaml_files:
            self.logger.warning(f"No YAML recipe files found in: {directory}")

        for yaml_file in yaml_files:
            if yaml_file.name.startswith("_"):
                self.logger.debug(f"Skipping template/example file: {yaml_file}")
                continue
            try:
                recipe = self.load_recipe_file(yaml_file)
            except (yaml.YAMLError, ValidationError, OSError) as e:
                self.logger.error(f"Failed to load recipe from {yaml_file}: {e}")
                continue
            if recipe:
                recipes.append(recipe)
        return recipes

    def load_recipe_file(self, file_path: Path) -> Recipe | None:
        """Load and validate a single recipe file."""
        self.logger.debug(f"Loading recipe from: {file_path}")
        with open(file_path, encoding="utf-8") as f:
            return self._parse(yaml.safe_load(f), str(file_path))

    def _parse(self, yaml_data: object, source: str) -> Recipe | None:
        if not yaml_data:
            self.logger.warning(f"Empty recipe file: {source}")
            return None
        recipe = Recipe.model_validate(yaml_data)
        self.check_fields(recipe)
        self.logger.debug(f"Loaded recipe: {recipe.name}")
        return recipe

    def check_fields(self, recipe: Recipe) -> list[str]:
        """Warn about mapped fields the query never requests; they will always be empty."""
        missing = RecordMapper(recipe.fields).unmapped_paths(recipe.query.query)
        for path in missing:
            self.logger.warning(f"Recipe '{recipe.name}': field path '{path}' is not requested by the query")
        return missing
