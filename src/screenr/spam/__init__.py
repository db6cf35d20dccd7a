"""Spam classification: tokenizer and token-chain classifier."""

from .classifier import ScanResult, SpamClassifier, TrainingSummary, Verdict
from .tokenizer import LanguageDetector, Tokenizer

__all__ = [
    "LanguageDetector",
    "ScanResult",
    "SpamClassifier",
    "Tokenizer",
    "TrainingSummary",
    "Verdict",
]
