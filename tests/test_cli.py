"""Command-line tests using Typer's test runner against recorded sessions."""

import pytest
from typer.testing import CliRunner

from conftest import RSC_URL, MockSession, RecordingTransport, connection_page
from rsc_report import __version__
from rsc_report.cli import app
from rsc_report.cli import mutate_cmd, run

runner = CliRunner()

SLA_PAGE = connection_page(
    "slaDomains",
    [{"id": "sla-1", "name": "Gold", "description": None, "protectedObjectCount": 3}],
)


@pytest.fixture
def session_with(monkeypatch):
    """Patch connect_session in both command modules to return a recorded session."""

    def _install(responses):
        recording = RecordingTransport(responses)
        session = MockSession(RSC_URL, "cli-token", transport=recording.transport)
        monkeypatch.setattr(run, "connect_session", lambda config: session)
        monkeypatch.setattr(mutate_cmd, "connect_session", lambda config: session)
        return recording

    return _install


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


class TestList:
    def test_recipes(self):
        result = runner.invoke(app, ["list", "recipes"])
        assert result.exit_code == 0
        assert "Events" in result.output
        assert "SLA Domains" in result.output

    def test_recipes_json(self):
        result = runner.invoke(app, ["list", "recipes", "--json"])
        assert result.exit_code == 0
        assert '"operation": "SlaDomainsReport"' in result.output


class TestConfig:
    def test_show_redacts_secrets(self, monkeypatch):
        monkeypatch.setenv("RSC_URL", "https://acme.my.rubrik.com")
        monkeypatch.setenv("RSC_CLIENT_SECRET", "abcd-super-secret-wxyz")

        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert "acme.my.rubrik.com" in result.output
        assert "super-secret" not in result.output

    def test_show_ignores_secrets_in_config_file(self, isolated_env):
        (isolated_env / ".rsc-report.yaml").write_text("url: acme.my.rubrik.com\nclient_secret: leaked-value\n")

        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert "leaked-value" not in result.output

    def test_init_writes_no_secrets(self, tmp_path):
        path = tmp_path / "config.yaml"
        result = runner.invoke(app, ["config", "init", "--path", str(path)], input="\nacme.my.rubrik.com\n./reports\n")

        assert result.exit_code == 0
        text = path.read_text()
        assert "url: acme.my.rubrik.com" in text
        assert "output_dir: ./reports" in text
        assert "secret" not in text


class TestRun:
    def test_unknown_recipe(self):
        result = runner.invoke(app, ["run", "Nope"])
        assert result.exit_code == 1
        assert "Recipe(s) not found: nope" in result.output

    def test_missing_credentials(self):
        result = runner.invoke(app, ["run", "Events"])
        assert result.exit_code == 2
        assert "No RSC credentials" in result.output

    def test_invalid_window(self):
        result = runner.invoke(app, ["run", "Events", "--from", "2024-06-02", "--to", "2024-06-01"])
        assert result.exit_code == 2

    def test_generates_files(self, session_with, tmp_path):
        recording = session_with([SLA_PAGE])
        out = tmp_path / "reports"

        result = runner.invoke(
            app, ["run", "SLA Domains", "-o", str(out), "-f", "csv", "--days", "2", "--no-progress"]
        )

        assert result.exit_code == 0, result.output
        assert len(list(out.glob("SLA_Domains-*.csv"))) == 1
        assert not list(out.glob("*.html"))
        assert recording.requests[0].headers["Authorization"] == "Bearer cli-token"

    def test_incomplete_run_exits_nonzero(self, session_with, tmp_path):
        session_with([{"errors": [{"message": "denied"}]}])

        result = runner.invoke(app, ["run", "SLA Domains", "-o", str(tmp_path), "--no-progress"])

        assert result.exit_code == 1

    def test_email_without_smtp_settings(self, session_with, tmp_path):
        session_with([])
        result = runner.invoke(app, ["run", "SLA Domains", "-o", str(tmp_path), "--email"])
        assert result.exit_code == 2
        assert "Email is not configured" in result.output


class TestMutations:
    def test_snapshot_without_check(self, session_with):
        recording = session_with([{"data": {"vsphereOnDemandSnapshot": {"id": "job-1", "status": "QUEUED"}}}])

        result = runner.invoke(
            app, ["snapshot", "VSPHERE_VM", "vm-1", "--sla", "sla-1", "--no-check", "--json"]
        )

        assert result.exit_code == 0, result.output
        assert '"Outcome": "SUCCESS"' in result.output
        assert '"JobID": "job-1"' in result.output
        assert len(recording.requests) == 1

    def test_snapshot_unknown_sla(self, session_with):
        recording = session_with([SLA_PAGE])

        result = runner.invoke(app, ["snapshot", "VSPHERE_VM", "vm-1", "--sla", "sla-9"])

        assert result.exit_code == 2
        assert "Unknown SLA domain ID: sla-9" in result.output
        assert len(recording.requests) == 1

    def test_snapshot_graphql_error(self, session_with):
        session_with(
            [SLA_PAGE, {"data": {"vsphereOnDemandSnapshot": None}, "errors": [{"message": "object not found"}]}]
        )

        result = runner.invoke(app, ["snapshot", "VSPHERE_VM", "vm-1", "--sla", "sla-1", "--json"])

        assert result.exit_code == 1
        assert '"RequestStatus": "SUCCESS"' in result.output
        assert '"Outcome": "FAILED"' in result.output
        assert "object not found" in result.output

    def test_sla_pause(self, session_with):
        recording = session_with([SLA_PAGE, {"data": {"pauseSla": {"success": True}}}])

        result = runner.invoke(
            app, ["sla", "pause", "sla-1", "--cluster", "c-1", "--cluster", "c-2", "--json"]
        )

        assert result.exit_code == 0, result.output
        assert '"Action": "PAUSE"' in result.output
        assert recording.variables[1]["input"] == {
            "slaId": "sla-1",
            "clusterUuids": ["c-1", "c-2"],
            "pauseSla": True,
        }
