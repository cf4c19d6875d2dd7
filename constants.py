"""
Application constants for the Draft Assistant

Tunable values live in config.py. Everything here is static league knowledge.
"""

# Draft setup bounds
MIN_TEAMS = 4
MAX_TEAMS = 20
MIN_ROSTER_SIZE = 5
MAX_ROSTER_SIZE = 25
MAX_LEAGUE_NAME_LENGTH = 100

# Draft setup defaults
DEFAULT_NUM_TEAMS = 12
DEFAULT_DRAFT_POSITION = 1
DEFAULT_ROSTER_SIZE = 13

# Positions by sport
NBA_POSITIONS = ["PG", "SG", "SF", "PF", "C", "G", "F", "UTIL"]
NFL_POSITIONS = ["QB", "RB", "WR", "TE", "K", "DEF", "FLEX"]
MLB_POSITIONS = ["C", "1B", "2B", "3B", "SS", "OF", "SP", "RP", "UTIL"]

# Position used when a player record has no primary position
UNKNOWN_POSITION = "UTIL"

# Ideal roster composition by sport (flex slots are not counted)
IDEAL_ROSTER_COMPOSITION = {
    "NBA": {"PG": 2, "SG": 2, "SF": 2, "PF": 2, "C": 2},
    "NFL": {"QB": 2, "RB": 4, "WR": 4, "TE": 2, "K": 1, "DEF": 1},
    "MLB": {"C": 1, "1B": 1, "2B": 1, "3B": 1, "SS": 1, "OF": 4, "SP": 5, "RP": 3},
}

BALANCED_ROSTER = "Roster is well-balanced"

# Recommendation tag vocabulary
TAG_BEST_AVAILABLE = "best available"
TAG_POSITIONAL_NEED = "positional need"
TAG_VALUE_PICK = "value pick"
TAG_SLEEPER = "sleeper"
TAG_SAFE_FLOOR = "safe floor"
TAG_HIGH_CEILING = "high ceiling"
RECOMMENDATION_TAGS = (
    TAG_BEST_AVAILABLE,
    TAG_POSITIONAL_NEED,
    TAG_VALUE_PICK,
    TAG_SLEEPER,
    TAG_SAFE_FLOOR,
    TAG_HIGH_CEILING,
)

# Fallback copy
FALLBACK_STRATEGY = "Draft the best available player based on ADP rankings"
DEFAULT_PROVIDER_STRATEGY = "Draft the best available player"
FALLBACK_BEST_REASONING = "Best available player by ADP"
FALLBACK_VALUE_REASONING = "Strong value at pick {pick}"
DEFAULT_PROVIDER_SCORE = 75

# Player search paging
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100
