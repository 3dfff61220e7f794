"""Spam signal detectors for public form submissions.

Three independent heuristics, each a pure function of the submission:

- HoneypotDetector: hidden trap fields that only bots fill in.
- TimingDetector: how long the form was open before it was submitted.
- ContentHeuristicDetector: spam vocabulary, link stuffing, shouting, and
  malformed or throwaway email addresses.

Detectors never see each other's output and keep no mutable state, so one
instance can serve concurrent requests. Scores are not capped here; the fusion
policy clamps the composite exactly once.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable

from formguard.core.config import DEFAULT_SPAM_PATTERNS, GuardSettings, parse_csv
from formguard.services.verdicts import SignalResult, Submission

HONEYPOT_SCORE = 95
REASON_HONEYPOT = "honeypot field filled"
REASON_TOO_FAST = "form filled too quickly"
REASON_TOO_MANY_LINKS = "too many links"
REASON_EXCESSIVE_CAPS = "excessive capital letters"
REASON_INVALID_EMAIL = "invalid email format"
REASON_SUSPICIOUS_DOMAIN = "suspicious email domain"

_LINK_RE = re.compile(r"https?://\S+", re.IGNORECASE)
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class SignalDetector(ABC):
    """Base detector. Subclass and implement detect()."""

    name: str

    @abstractmethod
    def detect(self, submission: Submission) -> SignalResult:
        """Inspect a submission and return this detector's signal."""
        raise NotImplementedError


@dataclass(frozen=True)
class HoneypotConfig:
    field_names: tuple[str, ...] = ("website", "phone_number", "company", "fax")


@dataclass(frozen=True)
class TimingConfig:
    min_seconds: float = 3.0
    suspicious_seconds: float = 10.0
    too_fast_score: int = 90
    suspicious_score: int = 60

    def __post_init__(self) -> None:
        if self.min_seconds < 0 or self.suspicious_seconds < self.min_seconds:
            raise ValueError("timing thresholds must satisfy 0 <= min_seconds <= suspicious_seconds")


@dataclass(frozen=True)
class ContentConfig:
    """Field names and vocabularies for the content heuristics.

    Attributes:
        text_fields: Free-text fields scanned for spam patterns, links, caps.
        email_field: Field holding the submitter's email, or None.
        spam_patterns: Case-insensitive regular expressions.
        disposable_domains: Substrings marking throwaway email domains.
        trigger_threshold: Internal score at which the detector triggers.
    """

    text_fields: tuple[str, ...] = (
        "beschreibung",
        "nachricht",
        "anmerkungen",
        "kommentar",
        "comment",
        "message",
        "description",
        "notes",
    )
    email_field: str | None = "email"
    spam_patterns: tuple[str, ...] = tuple(DEFAULT_SPAM_PATTERNS)
    disposable_domains: tuple[str, ...] = (
        "tempmail",
        "guerrillamail",
        "10minutemail",
        "mailinator",
        "spam",
        "trash",
        "temp",
        "fake",
    )
    pattern_score: int = 30
    max_links: int = 2
    links_score: int = 40
    caps_ratio: float = 0.5
    caps_min_length: int = 20
    caps_score: int = 25
    invalid_email_score: int = 50
    suspicious_domain_score: int = 60
    trigger_threshold: int = 70


def _is_filled(value: Any) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return bool(value)


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps are taken to be UTC so they can be compared with aware ones.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class HoneypotDetector(SignalDetector):
    """Flags submissions that populate any configured trap field."""

    name = "honeypot"

    def __init__(self, config: HoneypotConfig | None = None) -> None:
        self.config = config or HoneypotConfig()

    def detect(self, submission: Submission) -> SignalResult:
        for field_name in self.config.field_names:
            if _is_filled(submission.get(field_name)):
                return SignalResult(
                    detector=self.name,
                    triggered=True,
                    score=HONEYPOT_SCORE,
                    reasons=(REASON_HONEYPOT,),
                )
        return SignalResult(detector=self.name)


class TimingDetector(SignalDetector):
    """Scores how quickly the form was completed.

    Missing timing metadata is never held against the submitter.
    """

    name = "timing"

    def __init__(self, config: TimingConfig | None = None) -> None:
        self.config = config or TimingConfig()

    def check(self, rendered_at: datetime | None, submitted_at: datetime | None) -> SignalResult:
        if rendered_at is None or submitted_at is None:
            return SignalResult(detector=self.name)

        elapsed = (_as_utc(submitted_at) - _as_utc(rendered_at)).total_seconds()
        if elapsed < self.config.min_seconds:
            return SignalResult(
                detector=self.name,
                triggered=True,
                score=self.config.too_fast_score,
                reasons=(REASON_TOO_FAST,),
            )
        if elapsed < self.config.suspicious_seconds:
            return SignalResult(detector=self.name, score=self.config.suspicious_score)
        return SignalResult(detector=self.name)

    def detect(self, submission: Submission) -> SignalResult:
        return self.check(submission.form_rendered_at, submission.form_submitted_at)


class ContentHeuristicDetector(SignalDetector):
    """Sums independent content sub-checks into one uncapped score."""

    name = "content"

    def __init__(self, config: ContentConfig | None = None) -> None:
        self.config = config or ContentConfig()
        self._patterns = tuple(re.compile(p, re.IGNORECASE) for p in self.config.spam_patterns)
        self._disposable = tuple(d.lower() for d in self.config.disposable_domains if d)

    def _matches_spam_pattern(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in self._patterns)

    def _score_text(self, field_name: str, text: str) -> tuple[int, list[str]]:
        cfg = self.config
        score = 0
        reasons: list[str] = []

        if self._matches_spam_pattern(text):
            score += cfg.pattern_score
            reasons.append(f"spam pattern detected in {field_name}")

        if len(_LINK_RE.findall(text)) > cfg.max_links:
            score += cfg.links_score
            reasons.append(REASON_TOO_MANY_LINKS)

        if len(text) > cfg.caps_min_length:
            upper = sum(1 for ch in text if ch.isupper())
            if upper / len(text) > cfg.caps_ratio:
                score += cfg.caps_score
                reasons.append(REASON_EXCESSIVE_CAPS)

        return score, reasons

    def _score_email(self, value: Any) -> tuple[int, list[str]]:
        cfg = self.config
        email = value if isinstance(value, str) else str(value)
        score = 0
        reasons: list[str] = []

        if not _EMAIL_RE.match(email):
            score += cfg.invalid_email_score
            reasons.append(REASON_INVALID_EMAIL)

        parts = email.split("@")
        domain = parts[1].lower() if len(parts) > 1 else ""
        if domain and any(marker in domain for marker in self._disposable):
            score += cfg.suspicious_domain_score
            reasons.append(REASON_SUSPICIOUS_DOMAIN)

        return score, reasons

    def detect(self, submission: Submission) -> SignalResult:
        total = 0
        reasons: list[str] = []

        for field_name in self.config.text_fields:
            value = submission.get(field_name)
            if not isinstance(value, str) or not value:
                continue
            score, found = self._score_text(field_name, value)
            total += score
            reasons.extend(found)

        if self.config.email_field:
            email = submission.get(self.config.email_field)
            if _is_filled(email):
                score, found = self._score_email(email)
                total += score
                reasons.extend(found)

        return SignalResult(
            detector=self.name,
            triggered=total >= self.config.trigger_threshold,
            score=total,
            reasons=tuple(reasons),
        )


def build_detectors(guard: GuardSettings) -> list[SignalDetector]:
    """Build the detector chain, in evaluation order, from settings."""

    return [
        HoneypotDetector(HoneypotConfig(field_names=parse_csv(guard.honeypot_fields))),
        TimingDetector(
            TimingConfig(
                min_seconds=guard.min_fill_seconds,
                suspicious_seconds=guard.suspicious_fill_seconds,
            )
        ),
        ContentHeuristicDetector(
            ContentConfig(
                text_fields=parse_csv(guard.text_fields),
                email_field=guard.email_field or None,
                spam_patterns=tuple(guard.spam_patterns),
                disposable_domains=parse_csv(guard.disposable_email_domains),
                trigger_threshold=guard.block_threshold,
            )
        ),
    ]


def run_detectors(detectors: Iterable[SignalDetector], submission: Submission) -> list[SignalResult]:
    return [detector.detect(submission) for detector in detectors]
