"""Weighted token-chain similarity classifier for spam detection."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

from ..config import SpamSettings
from ..errors import MailboxError
from ..mailbox import Mailbox
from ..store import SpamTrainingStore
from ..types import FolderConfig, Mail, MailContent, SpamTraining, TrainingDataset
from .tokenizer import Tokenizer

LOGGER = logging.getLogger(__name__)

MIN_CHAIN_LENGTH = 2
MAX_CHAIN_LENGTH = 4
CHUNK_SIZE = 25
# Sum of chain lengths MIN..MAX, used as a per-token normalisation constant.
CHAIN_LENGTH_SUM = (
    MAX_CHAIN_LENGTH * (MAX_CHAIN_LENGTH + 1) - MIN_CHAIN_LENGTH * (MIN_CHAIN_LENGTH - 1)
) // 2


@dataclass(frozen=True)
class CorpusSummary:
    """Outcome of rebuilding one corpus."""

    name: str
    dataset_size: int
    chains: int
    skipped: int
    failed_chunks: int
    capped: bool


@dataclass(frozen=True)
class TrainingSummary:
    ham: CorpusSummary
    spam: CorpusSummary


@dataclass(frozen=True)
class ScanResult:
    """Verdict for one mail of a scanned folder."""

    folder: str
    mail_id: str
    subject: str
    is_spam: bool


@dataclass(frozen=True)
class Verdict:
    is_spam: bool
    ham_score: float
    spam_score: float
    token_count: int


def iter_chains(tokens: Sequence[str]) -> Iterator[tuple[int, str]]:
    """Yield ``(length, chain)`` for every window of 2 to 4 tokens."""

    for length in range(MIN_CHAIN_LENGTH, MAX_CHAIN_LENGTH + 1):
        for start in range(len(tokens) - length + 1):
            yield length, " ".join(tokens[start : start + length])


def score(tokens: Sequence[str], dataset: TrainingDataset) -> float:
    """Return how much of ``tokens`` is covered by ``dataset``.

    The achievable weight is approximated as ``len(tokens)`` times the sum of
    chain lengths and shrinks by the length of each unknown chain.
    """

    if len(tokens) < MIN_CHAIN_LENGTH:
        return 0.0
    total_weight = len(tokens) * CHAIN_LENGTH_SUM
    matched = 0
    for length, chain in iter_chains(tokens):
        if dataset.chain_weights.get(chain, 0) > 0:
            matched += length
        else:
            total_weight -= length
    if total_weight == 0 or dataset.dataset_size == 0:
        return 0.0
    return matched / total_weight / dataset.dataset_size


def train_on_tokens(tokens: Sequence[str], dataset: TrainingDataset) -> bool:
    """Add one message's chains to ``dataset``. Returns False if it was too short."""

    if len(tokens) < MIN_CHAIN_LENGTH:
        return False
    weights = dataset.chain_weights
    for length, chain in iter_chains(tokens):
        weights[chain] = weights.get(chain, 0.0) + length / len(tokens)
    dataset.dataset_size += 1
    return True


class SpamClassifier:
    """Classify mail content against ham and spam reference corpora."""

    def __init__(
        self,
        mailbox: Mailbox,
        store: SpamTrainingStore,
        settings: SpamSettings,
        *,
        ham_folders: Iterable[str] = (),
        tokenizer: Tokenizer | None = None,
    ) -> None:
        self._mailbox = mailbox
        self._store = store
        self._settings = settings
        self._tokenizer = tokenizer or Tokenizer()
        extra = [folder for folder in ham_folders if folder != settings.reference_folder]
        self._ham_folders = (settings.reference_folder, *extra)
        self._training = store.load()

    @property
    def spam_folder(self) -> str:
        return self._settings.spam_folder

    @property
    def training(self) -> SpamTraining:
        return self._training

    def classify(self, content: MailContent) -> bool:
        return self.evaluate(content).is_spam

    def evaluate(self, content: MailContent) -> Verdict:
        tokens = self._tokenizer.tokenize(content.text)
        if not tokens:
            return Verdict(is_spam=True, ham_score=0.0, spam_score=0.0, token_count=0)
        ham_score = score(tokens, self._training.ham)
        spam_score = score(tokens, self._training.spam)
        return Verdict(
            is_spam=ham_score - spam_score < 0,
            ham_score=ham_score,
            spam_score=spam_score,
            token_count=len(tokens),
        )

    def train(self) -> TrainingSummary:
        """Rebuild both corpora from the mailbox and persist them."""

        LOGGER.info("Training spam classifier")
        self._mailbox.connect()
        try:
            spam, spam_summary = self._build_corpus("spam", (self._settings.spam_folder,))
            ham, ham_summary = self._build_corpus("ham", self._ham_folders)
        finally:
            self._mailbox.disconnect()

        training = SpamTraining(ham=ham, spam=spam)
        self._store.save(training)
        self._training = training
        LOGGER.info(
            "Spam classifier trained: ham=%s message(s), spam=%s message(s)",
            ham.dataset_size,
            spam.dataset_size,
        )
        return TrainingSummary(ham=ham_summary, spam=spam_summary)

    def scan(self, folders: Iterable[FolderConfig]) -> list[ScanResult]:
        """Classify mail in every folder flagged for scanning without moving it.

        The caller owns the mailbox session.
        """

        results: list[ScanResult] = []
        for config in folders:
            if not config.scan_for_spam:
                continue
            for chunk in self._iter_content_chunks(config.folder, reverse=False):
                for content in chunk or ():
                    results.append(
                        ScanResult(
                            folder=config.folder,
                            mail_id=content.id,
                            subject=content.subject,
                            is_spam=self.classify(content),
                        )
                    )
        return results

    def _build_corpus(
        self, name: str, folders: Sequence[str]
    ) -> tuple[TrainingDataset, CorpusSummary]:
        dataset = TrainingDataset()
        limit = self._settings.max_dataset_size
        skipped = 0
        failed_chunks = 0
        capped = False
        for folder in folders:
            for chunk in self._iter_content_chunks(folder, reverse=True):
                if chunk is None:
                    failed_chunks += 1
                    continue
                for content in chunk:
                    if limit is not None and dataset.dataset_size >= limit:
                        capped = True
                        break
                    if not train_on_tokens(self._tokenizer.tokenize(content.text), dataset):
                        skipped += 1
                if capped:
                    break
            if capped:
                LOGGER.info("%s corpus reached its size cap of %s message(s)", name, limit)
                break
        summary = CorpusSummary(
            name=name,
            dataset_size=dataset.dataset_size,
            chains=len(dataset.chain_weights),
            skipped=skipped,
            failed_chunks=failed_chunks,
            capped=capped,
        )
        return dataset, summary

    def _iter_content_chunks(
        self, folder: str, *, reverse: bool
    ) -> Iterator[list[MailContent] | None]:
        """Yield fetched mail contents of ``folder`` in chunks.

        A chunk whose fetch fails is logged and yielded as ``None``.
        """

        mails: list[Mail] = self._mailbox.list_mail(folder)
        if reverse:
            mails.reverse()
        for start in range(0, len(mails), CHUNK_SIZE):
            chunk = mails[start : start + CHUNK_SIZE]
            LOGGER.debug(
                "Processing %s mail(s) %s to %s of %s",
                folder,
                start,
                start + len(chunk),
                len(mails),
            )
            try:
                yield self._mailbox.fetch_content(folder, [mail.id for mail in chunk])
            except MailboxError as exc:
                LOGGER.error(
                    "Failed to fetch mail %s to %s of %s (ids %s..%s): %s",
                    start,
                    start + len(chunk),
                    folder,
                    chunk[0].id,
                    chunk[-1].id,
                    exc,
                )
                yield None


__all__ = [
    "CHAIN_LENGTH_SUM",
    "CHUNK_SIZE",
    "CorpusSummary",
    "ScanResult",
    "SpamClassifier",
    "TrainingSummary",
    "Verdict",
    "iter_chains",
    "score",
    "train_on_tokens",
]
