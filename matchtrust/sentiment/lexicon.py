"""Built-in polarity lexicon for review comments.

Terms are lowercase single tokens. Both sets are frozen at import time and
shared read-only by every classifier instance.
"""

POSITIVE_TERMS = frozenset(
    {
        "good",
        "great",
        "excellent",
        "amazing",
        "awesome",
        "wonderful",
        "fantastic",
        "best",
        "perfect",
        "nice",
        "helpful",
        "friendly",
        "kind",
        "polite",
        "punctual",
        "reliable",
        "trustworthy",
        "honest",
        "clean",
        "thorough",
        "professional",
        "efficient",
        "careful",
        "caring",
        "recommend",
        "recommended",
        "satisfied",
        "happy",
        "love",
        "loved",
        "pleasant",
        "skilled",
        "experienced",
        "hardworking",
        "dependable",
    }
)

NEGATIVE_TERMS = frozenset(
    {
        "bad",
        "poor",
        "terrible",
        "awful",
        "horrible",
        "worst",
        "rude",
        "late",
        "lazy",
        "careless",
        "dirty",
        "unreliable",
        "unprofessional",
        "dishonest",
        "untrustworthy",
        "disappointed",
        "disappointing",
        "unhappy",
        "unsatisfied",
        "dissatisfied",
        "slow",
        "absent",
        "stole",
        "theft",
        "broke",
        "broken",
        "damaged",
        "avoid",
        "complaint",
        "mess",
        "messy",
        "incompetent",
        "hate",
    }
)
