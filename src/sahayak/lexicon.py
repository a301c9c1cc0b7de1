"""
Keyword tables used by the heuristic scorer.
Matching is substring based on lowercased text, so entries are lowercase.
"""

# Terms that show up in genuine disaster reports
DISASTER_KEYWORDS: tuple[str, ...] = (
    "flood", "earthquake", "cyclone", "hurricane", "tornado", "fire", "tsunami",
    "landslide", "storm", "rescue", "trapped", "injured", "help", "emergency",
    "stranded", "collapsed", "drowning", "evacuation", "shelter", "missing",
    "water", "food", "medical", "children", "elderly", "family", "house",
    "building", "roof", "floor", "ambulance", "hospital",
)

# Payment requests, phishing and advance-fee vocabulary
SCAM_INDICATORS: tuple[str, ...] = (
    "send money", "bank account", "bitcoin", "crypto", "western union",
    "gift card", "wire transfer", "urgent payment", "lottery", "won",
    "prince", "inheritance", "click here", "verify account", "password",
    "social security", "credit card", "claim now", "limited time",
    "act now", "guaranteed", "risk free", "secret", "miracle",
)

# Guilt-tripping and chain-letter pressure
MANIPULATION_PHRASES: tuple[str, ...] = (
    "dying", "last chance", "only you can help", "god will bless",
    "pray for us", "children will die", "blood on your hands",
    "ignore if you have no heart", "share or else", "forward this",
)

# Structural words that make a location actionable
LOCATION_DETAIL_WORDS: tuple[str, ...] = (
    "street", "road", "avenue", "block", "floor", "building", "near", "opposite", "behind",
)

# Nouns that follow a head count ("4 people", "3 children")
PEOPLE_NOUNS: tuple[str, ...] = (
    "people", "persons", "family", "members", "children", "kids", "adults",
)


def find_terms(text: str, terms: tuple[str, ...]) -> list[str]:
    """Return the terms (in table order) that occur in already-lowercased text."""
    return [term for term in terms if term in text]
