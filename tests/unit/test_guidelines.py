from __future__ import annotations

import json

import pytest

from screenr import store as store_module
from screenr.guidelines import GuidelineStore, normalize_sender
from screenr.types import Guideline


def test_unknown_sender_requires_manual_screening(tmp_path):
    store = GuidelineStore(tmp_path / "senders.json")

    assert store.get("nobody@example.com") == Guideline.manual_screening()
    assert store.get("") == Guideline.manual_screening()
    assert len(store) == 0


def test_set_reports_changes_and_persists(tmp_path):
    path = tmp_path / "state" / "senders.json"
    store = GuidelineStore(path)

    assert store.set('"Jane" <JANE@Example.com>', Guideline.target("Newsletter")) is True
    assert store.set("jane@example.com", Guideline.target("Newsletter")) is False

    assert store.get("jane@example.com") == Guideline.target("Newsletter")
    assert json.loads(path.read_text(encoding="utf-8")) == {
        "jane@example.com": {"result": "target_folder", "alias": "Newsletter"}
    }


def test_guidelines_survive_restart(tmp_path):
    path = tmp_path / "senders.json"
    GuidelineStore(path).set("a@example.com", Guideline.target("Receipts"))

    reloaded = GuidelineStore(path)

    assert reloaded.get("A@example.com") == Guideline.target("Receipts")
    assert dict(reloaded.snapshot()) == {"a@example.com": Guideline.target("Receipts")}


def test_empty_sender_is_not_stored(tmp_path):
    store = GuidelineStore(tmp_path / "senders.json")

    assert store.set("", Guideline.target("Receipts")) is False
    assert not store.path.exists()


def test_corrupt_file_is_quarantined(tmp_path):
    path = tmp_path / "senders.json"
    path.write_text("{not json", encoding="utf-8")

    store = GuidelineStore(path)

    assert len(store) == 0
    assert not path.exists()
    assert (tmp_path / "senders.json.corrupt").exists()


def test_normalize_sender():
    assert normalize_sender("Jane Doe <Jane@Example.COM>") == "jane@example.com"
    assert normalize_sender(" plain@example.com ") == "plain@example.com"
    assert normalize_sender(None) == ""


def test_failed_write_is_retried(tmp_path, monkeypatch):
    path = tmp_path / "senders.json"
    store = GuidelineStore(path)
    calls = []

    def flaky_write(target, writer):
        calls.append(target)
        if len(calls) == 1:
            raise OSError("disk full")
        store_module.atomic_write(target, writer)

    monkeypatch.setattr("screenr.guidelines.atomic_write", flaky_write)

    with pytest.raises(OSError, match="disk full"):
        store.set("jane@example.com", Guideline.target("Receipts"))

    assert store.get("jane@example.com") == Guideline.manual_screening()
    assert len(store) == 0

    assert store.set("jane@example.com", Guideline.target("Receipts")) is True
    assert json.loads(path.read_text(encoding="utf-8")) == {
        "jane@example.com": {"result": "target_folder", "alias": "Receipts"}
    }
