"""Tests for recipe loading and validation."""

import logging

import pytest
from pydantic import ValidationError

from rsc_report.errors import RSCReportError
from rsc_report.mapper import RecordMapper
from rsc_report.models import OutputConfig, QueryDescriptor, Recipe
from rsc_report.recipe_loader import RecipeLoader

BUNDLED = [
    "Events",
    "MSSQL Live Mounts",
    "Protected Objects",
    "Sensitive Data Hits",
    "SLA Domains",
]

USER_RECIPE = """\
name: sla domains
description: Just the names.
query:
  operation_name: SlaNames
  connection_path: slaDomains
  query: |
    query SlaNames($first: Int, $after: String) {
      slaDomains(first: $first, after: $after) {
        edges { node { id name } }
        pageInfo { endCursor hasNextPage }
      }
    }
fields:
  - output: Name
    path: name
"""


@pytest.fixture
def user_dir(tmp_path):
    d = tmp_path / "recipes"
    d.mkdir()
    return d


class TestBundledRecipes:
    def test_all_bundled_recipes_load(self):
        names = [r.name for r in RecipeLoader().load_recipes()]
        assert sorted(names, key=str.lower) == sorted(BUNDLED, key=str.lower)

    @pytest.mark.parametrize("name", BUNDLED)
    def test_every_field_is_requested_by_its_query(self, name):
        loader = RecipeLoader()
        assert loader.check_fields(loader.get_recipe(name)) == []

    def test_sensitive_hits_without_scan_result_are_empty(self):
        hits = RecipeLoader().get_recipe("Sensitive Data Hits")
        record = RecordMapper(hits.fields).map_node({"snappable": {"id": "o-1", "name": "fs01"}})
        assert record["TotalHits"] is None
        assert record["Violations"] is None

    def test_time_window_placeholders(self):
        events = RecipeLoader().get_recipe("events")
        query = events.query.with_substitutions({"start": "S", "end": "E"})
        assert query.variables["filters"]["lastUpdatedTimeGt"] == "S"
        assert query.variables["filters"]["lastUpdatedTimeLt"] == "E"

    def test_unknown_recipe(self):
        with pytest.raises(RSCReportError, match="Recipe not found"):
            RecipeLoader().get_recipe("Nope")


class TestUserRecipes:
    def test_user_recipe_overrides_bundled_case_insensitively(self, user_dir):
        (user_dir / "sla.yaml").write_text(USER_RECIPE)
        recipes = RecipeLoader(user_dir).load_recipes()

        assert len(recipes) == len(BUNDLED)
        sla = RecipeLoader(user_dir).get_recipe("SLA Domains")
        assert sla.query.operation_name == "SlaNames"

    def test_user_only(self, user_dir):
        (user_dir / "sla.yaml").write_text(USER_RECIPE)
        recipes = RecipeLoader(user_dir, use_bundled=False).load_recipes()
        assert [r.name for r in recipes] == ["sla domains"]

    def test_invalid_file_skipped(self, user_dir, caplog):
        (user_dir / "bad.yaml").write_text("name: Broken\nquery: {}\n")
        (user_dir / "broken.yml").write_text("name: [unclosed\n")
        (user_dir / "good.yaml").write_text(USER_RECIPE)

        with caplog.at_level(logging.ERROR):
            recipes = RecipeLoader(user_dir, use_bundled=False).load_recipes()

        assert [r.name for r in recipes] == ["sla domains"]
        assert "bad.yaml" in caplog.text
        assert "broken.yml" in caplog.text

    def test_duplicate_outputs_skipped(self, user_dir, caplog):
        text = USER_RECIPE + "  - output: Name\n    path: id\n"
        (user_dir / "dupes.yaml").write_text(text)
        (user_dir / "good.yaml").write_text(USER_RECIPE.replace("name: sla domains", "name: Names"))

        with caplog.at_level(logging.ERROR):
            recipes = RecipeLoader(user_dir, use_bundled=False).load_recipes()

        assert [r.name for r in recipes] == ["Names"]
        assert "dupes.yaml" in caplog.text
        assert "Duplicate output fields" in caplog.text

    def test_underscore_files_and_empty_files_skipped(self, user_dir):
        (user_dir / "_template.yaml").write_text(USER_RECIPE)
        (user_dir / "empty.yaml").write_text("")
        assert RecipeLoader(user_dir, use_bundled=False).load_recipes() == []

    def test_missing_directory(self, tmp_path):
        assert RecipeLoader(tmp_path / "absent", use_bundled=False).load_recipes() == []

    def test_unrequested_field_warns(self, user_dir, caplog):
        text = USER_RECIPE.replace("path: name", "path: cluster.clusterName")
        (user_dir / "sla.yaml").write_text(text)

        with caplog.at_level(logging.WARNING):
            RecipeLoader(user_dir, use_bundled=False).load_recipes()

        assert "field path 'cluster.clusterName' is not requested by the query" in caplog.text


class TestRecipeModel:
    def test_invalid_format_rejected(self):
        with pytest.raises(ValidationError):
            OutputConfig(formats=["pdf"])

    def test_formats_lowercased(self):
        assert OutputConfig(formats=["CSV", "Xlsx"]).formats == ["csv", "xlsx"]

    def test_fields_required(self):
        query = QueryDescriptor(operation_name="Q", query="query Q { x }", connection_path="x")
        with pytest.raises(ValidationError):
            Recipe(name="Empty", query=query, fields=[])

    def test_unknown_transform_rejected(self):
        query = QueryDescriptor(operation_name="Q", query="query Q { x }", connection_path="x")
        with pytest.raises(ValidationError, match="Unknown transform"):
            Recipe(name="R", query=query, fields=[{"output": "A", "path": "a", "transform": "nope"}])

    def test_duplicate_outputs_rejected(self):
        query = QueryDescriptor(operation_name="Q", query="query Q { x }", connection_path="x")
        fields = [{"output": "A", "path": "a"}, {"output": "A", "path": "b"}]
        with pytest.raises(ValidationError, match="Duplicate output fields"):
            Recipe(name="R", query=query, fields=fields)

    def test_page_size_limit(self):
        with pytest.raises(ValidationError):
            QueryDescriptor(operation_name="Q", query="query Q { x }", connection_path="x", page_size=5000)
