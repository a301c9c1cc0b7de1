"""
Rule-based authenticity scorer for distress reports.
Deterministic and offline: used on its own when no language model is
configured and as the fallback whenever the AI classifier cannot answer.
"""

from __future__ import annotations

import re

from .lexicon import (
    DISASTER_KEYWORDS,
    LOCATION_DETAIL_WORDS,
    MANIPULATION_PHRASES,
    PEOPLE_NOUNS,
    SCAM_INDICATORS,
    find_terms,
)
from .models import ClassificationResult, VerificationStatus

GENUINE_THRESHOLD = 0.65
SCAM_THRESHOLD = 0.35
MIN_SCORE = 0.05
MAX_SCORE = 0.98

NO_INDICATORS_REASON = "Standard analysis completed without notable indicators."


def status_for_score(score: float) -> VerificationStatus:
    if score >= GENUINE_THRESHOLD:
        return VerificationStatus.LIKELY_GENUINE
    if score >= SCAM_THRESHOLD:
        return VerificationStatus.NEEDS_VERIFICATION
    return VerificationStatus.HIGH_SCAM_PROBABILITY


class HeuristicScorer:
    """Additive keyword/pattern scoring around a neutral 0.5 prior."""

    PRIOR = 0.5

    DISASTER_WEIGHT = 0.08
    DISASTER_CAP = 0.3
    LOCATION_BONUS = 0.10
    PEOPLE_BONUS = 0.10
    SCAM_WEIGHT = 0.15
    SCAM_CAP = 0.4
    MANIPULATION_WEIGHT = 0.12
    MANIPULATION_CAP = 0.3
    BRIEF_PENALTY = 0.15
    DETAIL_BONUS = 0.05
    CONTACT_BONUS = 0.08
    CAPS_PENALTY = 0.10
    EXCLAMATION_PENALTY = 0.08

    SPECIFIC_LOCATION_PATTERN = re.compile(
        r"\d+|" + "|".join(LOCATION_DETAIL_WORDS), re.IGNORECASE
    )
    PEOPLE_COUNT_PATTERN = re.compile(
        r"\d+\s*(?:" + "|".join(PEOPLE_NOUNS) + r")", re.IGNORECASE
    )
    CONTACT_PATTERN = re.compile(r"\+?\d{10,}|[\w.-]+@[\w.-]+\.\w+")
    UPPERCASE_PATTERN = re.compile(r"[A-Z]")

    def score(self, message: str, location: str) -> ClassificationResult:
        message = message or ""
        location = location or ""
        combined = f"{message.lower()} {location.lower()}"

        score = self.PRIOR
        reasons: list[str] = []

        disaster_matches = find_terms(combined, DISASTER_KEYWORDS)
        if disaster_matches:
            score += min(len(disaster_matches) * self.DISASTER_WEIGHT, self.DISASTER_CAP)
            reasons.append(f"Contains {len(disaster_matches)} disaster-related terms")

        if self.SPECIFIC_LOCATION_PATTERN.search(location):
            score += self.LOCATION_BONUS
            reasons.append("Location contains specific details")

        if self.PEOPLE_COUNT_PATTERN.search(message):
            score += self.PEOPLE_BONUS
            reasons.append("Specifies number of people affected")

        scam_matches = find_terms(combined, SCAM_INDICATORS)
        if scam_matches:
            score -= min(len(scam_matches) * self.SCAM_WEIGHT, self.SCAM_CAP)
            reasons.append(f"Contains {len(scam_matches)} potential scam indicator(s)")

        manipulation_matches = find_terms(combined, MANIPULATION_PHRASES)
        if manipulation_matches:
            score -= min(len(manipulation_matches) * self.MANIPULATION_WEIGHT, self.MANIPULATION_CAP)
            reasons.append("Contains emotional manipulation language")

        length = len(message)
        if length < 30:
            score -= self.BRIEF_PENALTY
            reasons.append("Message is too brief for actionable response")
        elif 100 < length < 500:
            score += self.DETAIL_BONUS
            reasons.append("Message provides adequate detail")

        if self.CONTACT_PATTERN.search(combined):
            score += self.CONTACT_BONUS
            reasons.append("Contains verifiable contact information")

        if length > 20 and len(self.UPPERCASE_PATTERN.findall(message)) / length > 0.5:
            score -= self.CAPS_PENALTY
            reasons.append("Excessive use of capital letters")

        if message.count("!") > 3:
            score -= self.EXCLAMATION_PENALTY
            reasons.append("Excessive punctuation detected")

        # weights carry two decimals; rounding removes float drift at the thresholds
        score = max(MIN_SCORE, min(MAX_SCORE, round(score, 4)))

        return ClassificationResult(
            status=status_for_score(score),
            confidence=score,
            reason=". ".join(reasons) + "." if reasons else NO_INDICATORS_REASON,
        )


_default_scorer = HeuristicScorer()


def score_message(message: str, location: str) -> ClassificationResult:
    return _default_scorer.score(message, location)
