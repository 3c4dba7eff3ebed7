"""Tests for email delivery and SQL export."""

import sqlite3
from datetime import UTC, datetime
from email import message_from_bytes

import pytest
from sqlalchemy import BigInteger, Boolean, DateTime, Float, Text

from rsc_report.config import EmailSettings
from rsc_report.errors import RSCReportError
from rsc_report.notify import SMTPEmailSender, email_report
from rsc_report.renderers import ReportRenderer
from rsc_report.sql_writer import column_type, write_records


class FakeSMTP:
    """Records what an SMTP session was asked to do."""

    instances: list["FakeSMTP"] = []

    def __init__(self, server, port):
        self.server = server
        self.port = port
        self.calls = []
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, username, password):
        self.calls.append(("login", username))

    def send_message(self, msg):
        self.sent.append(msg)


@pytest.fixture
def settings():
    return EmailSettings(
        server="smtp.example.com",
        port=587,
        sender="reports@example.com",
        recipients="ops@example.com, backup@example.com",
        use_tls=True,
        username="reports",
        password="hunter2",
    )


@pytest.fixture(autouse=True)
def reset_fake_smtp():
    FakeSMTP.instances = []


class TestEmail:
    def test_unconfigured_settings_rejected(self):
        with pytest.raises(RSCReportError, match="not configured"):
            SMTPEmailSender(EmailSettings(server="smtp.example.com"))

    def test_email_report_sends_html_and_csv(self, tmp_path, settings):
        report = ReportRenderer(tmp_path).render("Events", [{"Name": "vm01"}], formats=["csv"])
        sender = SMTPEmailSender(settings, smtp_factory=FakeSMTP)

        email_report(sender, report, subject="Events - acme")

        smtp = FakeSMTP.instances[0]
        assert (smtp.server, smtp.port) == ("smtp.example.com", 587)
        assert smtp.calls == ["starttls", ("login", "reports")]

        msg = message_from_bytes(smtp.sent[0].as_bytes())
        assert msg["Subject"] == "Events - acme"
        assert msg["To"] == "ops@example.com, backup@example.com"
        html_parts = [p for p in msg.walk() if p.get_content_type() == "text/html"]
        assert "vm01" in html_parts[0].get_payload(decode=True).decode()
        attachments = [p.get_filename() for p in msg.walk() if p.get_filename()]
        assert attachments == [report.csv_path.name]

    def test_smtp_failure_wrapped(self, tmp_path, settings):
        def refuse(server, port):
            raise ConnectionRefusedError("refused")

        sender = SMTPEmailSender(settings, smtp_factory=refuse)
        with pytest.raises(RSCReportError, match="smtp.example.com:587"):
            sender.send("subject", "<p>body</p>", [])


class TestSQL:
    @pytest.mark.parametrize(
        "values, expected",
        [
            ([True, False, None], Boolean),
            ([1, 2, None], BigInteger),
            ([1, 2.5], Float),
            ([datetime(2024, 6, 1, tzinfo=UTC)], DateTime),
            (["a", 1], Text),
            ([None, None], Text),
            ([], Text),
        ],
    )
    def test_column_type(self, values, expected):
        assert isinstance(column_type(values), expected)

    def test_write_records(self, tmp_path):
        db = tmp_path / "reports.db"
        records = [
            {"Name": "Gold", "ProtectedObjects": 12, "RetentionLocked": True, "ArchivalLocations": ["s3", "azure"]},
            {"Name": "Silver", "ProtectedObjects": 3, "RetentionLocked": False, "ArchivalLocations": []},
        ]

        written = write_records(records, "sla_domains", f"sqlite:///{db}")

        assert written == 2
        with sqlite3.connect(db) as conn:
            rows = conn.execute(
                "SELECT Name, ProtectedObjects, ArchivalLocations FROM sla_domains ORDER BY Name"
            ).fetchall()
        assert rows == [("Gold", 12, "s3, azure"), ("Silver", 3, "")]

    def test_write_selected_columns(self, tmp_path):
        db = tmp_path / "reports.db"
        write_records([{"A": 1, "B": "x"}], "t", f"sqlite:///{db}", columns=["B"])
        with sqlite3.connect(db) as conn:
            columns = [row[1] for row in conn.execute("PRAGMA table_info(t)")]
        assert columns == ["B"]

    def test_no_records(self, tmp_path):
        assert write_records([], "t", f"sqlite:///{tmp_path / 'r.db'}") == 0
