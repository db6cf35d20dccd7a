from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from screenr.cli import app
from screenr.guidelines import GuidelineStore
from screenr.types import Guideline

runner = CliRunner()


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch):
    monkeypatch.setattr("screenr.cli.configure_logging", lambda *_args: None)


def _write_config(tmp_path: Path, *, spam: bool = False) -> Path:
    maildir = tmp_path / "Maildir"
    for sub in ("cur", "new", "tmp"):
        (maildir / sub).mkdir(parents=True, exist_ok=True)
    lines = [
        f"root_dir: {tmp_path / 'state'}",
        "mailbox:",
        "  type: maildir",
        f"  path: {maildir}",
        "folders:",
        "  Inbox: INBOX",
        "  ForScreening: Screening",
        "  Receipts:",
        "    folder: Receipts",
        "    scan_for_spam: true",
    ]
    if spam:
        lines += ["spam:", "  reference_folder: INBOX", "  spam_folder: Junk"]
    config = tmp_path / "config.yaml"
    config.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return config


def _deliver(tmp_path: Path, folder: str, name: str, sender: str, body: str) -> Path:
    base = tmp_path / "Maildir"
    if folder != "INBOX":
        base = base / folder
    target = base / "new" / name
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(
        f"From: {sender}\nTo: me@example.com\nSubject: Hello\n\n{body}\n", encoding="utf-8"
    )
    return target


def test_status_reports_configuration(tmp_path):
    config_path = _write_config(tmp_path)

    result = runner.invoke(app, ["-c", str(config_path), "status"])

    assert result.exit_code == 0
    assert "Receipts: Receipts" in result.stdout
    assert "Guidelines: 0 sender(s)" in result.stdout
    assert "Spam classifier: disabled" in result.stdout
    assert "Daemon: ○ Stopped" in result.stdout


def test_screen_moves_unknown_sender_to_screening(tmp_path):
    config_path = _write_config(tmp_path)
    _deliver(tmp_path, "INBOX", "1700000000.a.host", "new@example.com", "hi")

    result = runner.invoke(app, ["-c", str(config_path), "screen"])

    assert result.exit_code == 0
    assert "moved=1" in result.stdout
    assert (tmp_path / "Maildir" / "Screening" / "cur" / "1700000000.a.host").is_file()


def test_screen_learns_from_manual_placement(tmp_path):
    config_path = _write_config(tmp_path)
    _deliver(tmp_path, "Receipts", "1700000000.a.host", "shop@store.test", "receipt")
    _deliver(tmp_path, "INBOX", "1700000001.b.host", "shop@store.test", "another receipt")

    result = runner.invoke(app, ["-c", str(config_path), "screen"])

    assert result.exit_code == 0
    assert (tmp_path / "Maildir" / "Receipts" / "cur" / "1700000001.b.host").is_file()
    guidelines = GuidelineStore(tmp_path / "state" / "senders.json")
    assert guidelines.get("shop@store.test") == Guideline.target("Receipts")


def test_classify_requires_spam_section(tmp_path):
    config_path = _write_config(tmp_path)
    message_path = tmp_path / "sample.eml"
    message_path.write_text("From: a@example.com\nSubject: Hi\n\nHello there\n", encoding="utf-8")

    result = runner.invoke(app, ["-c", str(config_path), "classify", str(message_path)])

    assert result.exit_code == 1


def test_classify_outputs_verdict(tmp_path):
    config_path = _write_config(tmp_path, spam=True)
    message_path = tmp_path / "sample.eml"
    message_path.write_text(
        "From: a@example.com\nSubject: Lunch\n\nShall we meet for lunch tomorrow?\n",
        encoding="utf-8",
    )

    result = runner.invoke(app, ["-c", str(config_path), "classify", str(message_path)])

    assert result.exit_code == 0
    assert "Subject: Lunch" in result.stdout
    assert "Verdict: ham" in result.stdout


def test_train_reports_corpus_sizes(tmp_path):
    config_path = _write_config(tmp_path, spam=True)
    _deliver(tmp_path, "Junk", "1700000000.a.host", "x@spam.test", "buy cheap pills now")
    _deliver(tmp_path, "INBOX", "1700000001.b.host", "boss@work.test", "meeting moved to noon")

    result = runner.invoke(app, ["-c", str(config_path), "train"])

    assert result.exit_code == 0
    assert "ham: 1 message(s)" in result.stdout
    assert "spam: 1 message(s)" in result.stdout
    assert (tmp_path / "state" / "spam_training.json").exists()


def test_scan_lists_flagged_folders(tmp_path):
    config_path = _write_config(tmp_path, spam=True)
    _deliver(tmp_path, "Receipts", "1700000000.a.host", "shop@store.test", "your receipt")

    result = runner.invoke(app, ["-c", str(config_path), "scan"])

    assert result.exit_code == 0
    assert "Receipts  1700000000.a.host  Hello" in result.stdout


def test_configuration_errors_exit_with_code_two(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("folders:\n  Inbox: INBOX\n", encoding="utf-8")

    result = runner.invoke(app, ["-c", str(config_path), "screen"])

    assert result.exit_code == 2
