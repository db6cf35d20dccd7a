"""Screenr command-line interface."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, NoReturn

import typer

from . import __version__
from .config import Config, ConfigError, load_config, resolve_config_path
from .errors import MailboxError
from .extractor import extract_content
from .guidelines import GuidelineStore
from .logging import configure_logging
from .mailbox import Mailbox, build_mailbox
from .pidfile import DEFAULT_PID_NAME, PidFile, PidFileError, running_pid
from .runtime import ScreeningDaemon
from .screener import Screener
from .spam import SpamClassifier
from .store import SpamTrainingStore

app = typer.Typer(help="Screenr mail screening utilities.")

GUIDELINES_FILE = "senders.json"
TRAINING_FILE = "spam_training.json"


@dataclass
class CLIState:
    """Stores shared CLI options."""

    config_path: Path | None


@dataclass
class Components:
    """Objects wired from configuration for one command."""

    config: Config
    mailbox: Mailbox
    guidelines: GuidelineStore
    classifier: SpamClassifier | None
    screener: Screener


@app.callback()
def _screenr(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option(
            "-c",
            "--config",
            help="Path to Screenr config (env SCREENR_CONFIG or ~/.config/screenr/config.yaml).",
        ),
    ] = None,
) -> None:
    """Capture global CLI options."""

    ctx.obj = CLIState(config_path=config.expanduser() if config else None)


@app.command()
def daemon(
    ctx: typer.Context,
    pid_file: Annotated[
        Path | None,
        typer.Option("--pid-file", help="Override PID file location (defaults to <root>/screenr.pid)."),
    ] = None,
    skip_initial_training: Annotated[
        bool,
        typer.Option("--skip-initial-training", help="Wait one training interval before training."),
    ] = False,
) -> None:
    """Screen mail periodically until interrupted."""

    components = _build(_state(ctx))
    config = components.config
    try:
        with PidFile(_pid_file_path(pid_file, config)):
            runtime = ScreeningDaemon(
                components.screener,
                interval=config.interval,
                classifier=components.classifier,
                training_interval=config.spam.training_interval if config.spam else None,
            )
            runtime.run(initial_training=not skip_initial_training)
    except PidFileError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from exc


@app.command()
def screen(ctx: typer.Context) -> None:
    """Run a single screening pass."""

    components = _build(_state(ctx))
    ok = components.screener.screen_mail()
    metrics = components.screener.metrics
    typer.echo(
        f"learned={metrics.guidelines_learned} moved={metrics.moves} "
        f"failed_moves={metrics.failed_moves} spam={metrics.spam_verdicts}"
    )
    if not ok:
        typer.secho("Screening failed; see log for details.", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)


@app.command()
def train(ctx: typer.Context) -> None:
    """Rebuild the ham and spam corpora from the configured folders."""

    classifier = _require_classifier(_build(_state(ctx)))
    try:
        summary = classifier.train()
    except MailboxError as exc:
        typer.secho(f"Training failed: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from exc
    for corpus in (summary.ham, summary.spam):
        line = (
            f"{corpus.name}: {corpus.dataset_size} message(s), {corpus.chains} chain(s), "
            f"{corpus.skipped} skipped, {corpus.failed_chunks} failed chunk(s)"
        )
        if corpus.capped:
            line += " (size cap reached)"
        typer.echo(line)


@app.command()
def classify(
    ctx: typer.Context,
    message: Annotated[Path, typer.Argument(..., help="Path to .eml message file.")],
) -> None:
    """Classify a single RFC822 message against the trained corpora."""

    classifier = _require_classifier(_build(_state(ctx)))
    message_path = message.expanduser()
    if not message_path.is_file():
        typer.secho(f"Message file not found: {message_path}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    content = extract_content(message_path.read_bytes(), message_path.name)
    verdict = classifier.evaluate(content)
    typer.echo(f"Message: {message_path}")
    typer.echo(f"Subject: {content.subject}")
    typer.echo(f"Tokens: {verdict.token_count}")
    typer.echo(f"Ham score: {verdict.ham_score:.6g}")
    typer.echo(f"Spam score: {verdict.spam_score:.6g}")
    typer.echo(f"Verdict: {'spam' if verdict.is_spam else 'ham'}")


@app.command()
def scan(ctx: typer.Context) -> None:
    """Report spam verdicts for folders flagged with scan_for_spam."""

    components = _build(_state(ctx))
    classifier = _require_classifier(components)
    components.mailbox.connect()
    try:
        results = classifier.scan(components.config.folders.values())
    except MailboxError as exc:
        typer.secho(f"Scan failed: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from exc
    finally:
        components.mailbox.disconnect()
    if not results:
        typer.echo("No mail scanned (flag folders with scan_for_spam).")
    for result in results:
        label = "spam" if result.is_spam else "ham "
        typer.echo(f"{label}  {result.folder}  {result.mail_id}  {result.subject}")


@app.command()
def status(
    ctx: typer.Context,
    pid_file: Annotated[
        Path | None,
        typer.Option("--pid-file", help="Override PID file location used to detect the daemon."),
    ] = None,
) -> None:
    """Display configuration, learned guidelines and daemon state."""

    state = _state(ctx)
    config = _load_config(state.config_path)
    guidelines = GuidelineStore(config.root_dir / GUIDELINES_FILE)
    training = SpamTrainingStore(config.root_dir / TRAINING_FILE).load()
    pid = running_pid(_pid_file_path(pid_file, config))

    typer.echo("→ Screenr Status")
    typer.echo(f"Version: {__version__}")
    typer.echo(f"Config path: {resolve_config_path(state.config_path)}")
    typer.echo(f"Root dir: {config.root_dir}")
    typer.echo(f"Daemon: ● Running (PID {pid})" if pid else "Daemon: ○ Stopped")
    typer.echo(f"Mailbox: {config.mailbox.type}")
    typer.echo("")
    typer.echo("Folders:")
    for alias, folder in config.folders.items():
        line = f"  - {alias}: {folder.folder}"
        if folder.has_separate_screening:
            line += f" (screening: {folder.screening_folder})"
        typer.echo(line)
    typer.echo("")
    typer.echo(f"Guidelines: {len(guidelines)} sender(s)")
    if config.spam:
        typer.echo(f"Spam folder: {config.spam.spam_folder}")
        typer.echo(
            f"Corpora: ham={training.ham.dataset_size} spam={training.spam.dataset_size} message(s)"
        )
    else:
        typer.echo("Spam classifier: disabled")


def _state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise RuntimeError("CLI state missing from context.")
    return state


def _build(state: CLIState) -> Components:
    config = _load_config(state.config_path)
    try:
        configure_logging(config.logging, config.root_dir)
        mailbox = build_mailbox(config.mailbox)
    except ConfigError as exc:
        _config_failure(exc)
    except MailboxError as exc:
        typer.secho(f"Mailbox error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from exc

    guidelines = GuidelineStore(config.root_dir / GUIDELINES_FILE)
    classifier = None
    if config.spam:
        classifier = SpamClassifier(
            mailbox,
            SpamTrainingStore(config.root_dir / TRAINING_FILE),
            config.spam,
            ham_folders=[cfg.folder for cfg in config.folders.values() if cfg.use_for_training],
        )
    screener = Screener(
        mailbox,
        guidelines,
        config.folders,
        classifier=classifier,
        spam_folder=config.spam.spam_folder if config.spam else None,
    )
    return Components(
        config=config,
        mailbox=mailbox,
        guidelines=guidelines,
        classifier=classifier,
        screener=screener,
    )


def _require_classifier(components: Components) -> SpamClassifier:
    if components.classifier is None:
        typer.secho("Spam classifier is not configured (add a 'spam' section).", err=True)
        raise typer.Exit(1)
    return components.classifier


def _load_config(path: Path | None) -> Config:
    try:
        return load_config(path)
    except ConfigError as exc:
        _config_failure(exc)


def _config_failure(exc: ConfigError) -> NoReturn:
    typer.secho(f"Configuration error: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(2) from exc


def _pid_file_path(pid_file: Path | None, config: Config) -> Path:
    if pid_file:
        return pid_file.expanduser()
    return (config.root_dir / DEFAULT_PID_NAME).expanduser()


def main() -> None:  # pragma: no cover - delegated to Typer
    app()


__all__ = ["app", "main"]
