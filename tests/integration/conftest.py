from __future__ import annotations

import time
import uuid
from pathlib import Path

import pytest


def load_corpus(corpus_dir: Path) -> dict[str, list[Path]]:
    """Return sorted spam/ham fixtures for tests."""

    spam = sorted((corpus_dir / "spam").glob("*.eml"))
    ham = sorted((corpus_dir / "ham").glob("*.eml"))
    if not spam or not ham:
        raise RuntimeError("Corpus fixtures missing spam or ham messages")
    return {"spam": spam, "ham": ham}


def deliver(maildir: Path, folder: str, raw: bytes) -> Path:
    """Drop a message into ``folder`` of ``maildir`` under a unique timestamped name."""

    base = maildir if folder.upper() == "INBOX" else maildir / folder
    destination_dir = base / "new"
    destination_dir.mkdir(parents=True, exist_ok=True)
    unique = f"{time.time_ns()}.{uuid.uuid4().hex}.screenr:2,"
    target = destination_dir / unique
    target.write_bytes(raw)
    return target


def compose(sender: str, subject: str, body: str) -> bytes:
    return (
        f"From: {sender}\nTo: me@example.com\nSubject: {subject}\n"
        f"Content-Type: text/plain; charset=utf-8\n\n{body}\n"
    ).encode("utf-8")


@pytest.fixture(scope="session")
def corpus_dir() -> Path:
    root = Path(__file__).resolve().parents[1] / "fixtures" / "corpus"
    if not root.exists():
        pytest.skip("Corpus fixtures missing")
    return root


@pytest.fixture
def maildir(tmp_path: Path) -> Path:
    root = tmp_path / "Maildir"
    for sub in ("cur", "new", "tmp"):
        (root / sub).mkdir(parents=True)
    return root


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Automatically mark tests in this package as integration."""

    package_root = Path(__file__).resolve().parent
    integration_mark = pytest.mark.integration
    for item in items:
        try:
            path = Path(item.fspath).resolve()
        except OSError:
            continue
        if package_root in path.parents:
            item.add_marker(integration_mark)
