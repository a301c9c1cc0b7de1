import pytest

from sahayak.heuristics import (
    HeuristicScorer,
    MAX_SCORE,
    MIN_SCORE,
    NO_INDICATORS_REASON,
    score_message,
    status_for_score,
)
from sahayak.lexicon import DISASTER_KEYWORDS, find_terms
from sahayak.models import VerificationStatus


FLOOD_MESSAGE = (
    "Family of 4 trapped on 2nd floor due to rising flood water. Building at 45 River Street, "
    "near old market. Water level at 4 feet and rising. Children aged 3 and 7. Need immediate rescue boat."
)
SCAM_MESSAGE = (
    "URGENT!!! Send money to help victims!!! Western Union only!!! "
    "Share this message or children will die!!!"
)


def test_detailed_flood_report_is_likely_genuine():
    result = score_message(FLOOD_MESSAGE, "45 River Street, near old market")

    assert result.status == VerificationStatus.LIKELY_GENUINE
    assert result.confidence >= 0.65
    assert "disaster-related terms" in result.reason
    assert "Location contains specific details" in result.reason


def test_payment_request_with_pressure_is_scam():
    result = score_message(SCAM_MESSAGE, "Unknown area")

    assert result.status == VerificationStatus.HIGH_SCAM_PROBABILITY
    assert result.confidence < 0.35
    assert result.confidence == pytest.approx(0.21)
    assert result.reason == (
        "Contains 2 disaster-related terms. "
        "Contains 2 potential scam indicator(s). "
        "Contains emotional manipulation language. "
        "Message provides adequate detail. "
        "Excessive punctuation detected."
    )


def test_vague_report_needs_verification():
    result = score_message("Some flooding in my area. Anyone else affected?", "Downtown")

    assert result.status == VerificationStatus.NEEDS_VERIFICATION
    assert result.confidence == pytest.approx(0.58)


def test_neutral_message_uses_default_reason():
    result = score_message("Please tell everyone here what happened today in this town okay.", "Somewhere")

    assert result.confidence == pytest.approx(0.5)
    assert result.status == VerificationStatus.NEEDS_VERIFICATION
    assert result.reason == NO_INDICATORS_REASON


def test_score_exactly_at_genuine_threshold():
    message = (
        "Our neighbourhood lost power this morning and the main gate of the "
        "apartment complex will not open for anyone at all."
    )
    result = score_message(message, "12 Market Road")

    assert result.confidence == 0.65
    assert result.status == VerificationStatus.LIKELY_GENUINE


def test_score_exactly_at_scam_threshold():
    result = score_message("Please call me back soon.", "Somewhere")

    assert result.confidence == 0.35
    assert result.status == VerificationStatus.NEEDS_VERIFICATION
    assert "too brief" in result.reason


def test_exclamations_push_below_scam_threshold():
    result = score_message("Please call me back soon!!!!", "Somewhere")

    assert result.confidence == pytest.approx(0.27)
    assert result.status == VerificationStatus.HIGH_SCAM_PROBABILITY
    assert result.reason.endswith("Excessive punctuation detected.")


@pytest.mark.parametrize(
    "score, expected",
    [
        (0.65, VerificationStatus.LIKELY_GENUINE),
        (0.6499, VerificationStatus.NEEDS_VERIFICATION),
        (0.35, VerificationStatus.NEEDS_VERIFICATION),
        (0.3499, VerificationStatus.HIGH_SCAM_PROBABILITY),
    ],
)
def test_status_for_score_thresholds(score, expected):
    assert status_for_score(score) == expected


def test_score_is_clamped_high():
    message = (
        "Flood water rising fast, 5 people trapped on the roof of our house near the temple, "
        "elderly and children need rescue, call 9876543210."
    )
    result = score_message(message, "12 Temple Road")

    assert result.confidence == MAX_SCORE
    assert "Specifies number of people affected" in result.reason
    assert "Contains verifiable contact information" in result.reason


def test_score_is_clamped_low():
    result = score_message("SEND MONEY BITCOIN!!!!", "Nowhere")

    assert result.confidence == MIN_SCORE
    assert result.status == VerificationStatus.HIGH_SCAM_PROBABILITY
    assert "Excessive use of capital letters" in result.reason


def test_scoring_is_deterministic():
    scorer = HeuristicScorer()
    first = scorer.score(FLOOD_MESSAGE, "45 River Street")
    second = scorer.score(FLOOD_MESSAGE, "45 River Street")

    assert first == second


def test_empty_input_is_handled():
    result = score_message("", "")

    assert MIN_SCORE <= result.confidence <= MAX_SCORE
    assert result.status in VerificationStatus.terminal()


def test_keyword_matching_is_substring_based():
    assert find_terms("heavy flooding overnight", DISASTER_KEYWORDS) == ["flood"]
