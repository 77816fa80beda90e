"""
Engine-wide constants for the ranking and clan aggregation jobs.

This module contains the fixed numbers the algorithms depend on. Values that
operators are expected to tune live in beatrank.config instead.
"""

class RankingConstants:
    """Constants related to rank ordering."""

    # Statuses whose leaderboards are ordered by pp instead of modified score
    PP_RANKED_STATUSES = ('ranked', 'qualified', 'inevent')

class ClanConstants:
    """Constants for clan ownership and clan pp."""

    # Per-member weight decay in the ownership contest (best score counts fully)
    CONTEST_WEIGHT_DECAY = 0.9

    # Per-member weight decay for clan aggregate pp
    AGGREGATE_PP_DECAY = 0.965

    # Pseudo-owners shown when no single clan holds a leaderboard
    UNCLAIMED_TAG = "OOOO"
    CONTESTED_TAG = "XXXX"

class ScoringConstants:
    """Constants for score and modifier math."""

    # Maximum points for a single perfectly cut note
    MAX_NOTE_SCORE = 115

    # Speed modifiers excluded from the total multiplier on request
    SPEED_MODIFIERS = ('SF', 'FS', 'SS')

    # Default modifier deltas applied on top of a 1.0 multiplier
    DEFAULT_MODIFIER_VALUES = {
        'DA': 0.005,
        'FS': 0.11,
        'SF': 0.25,
        'SS': -0.3,
        'GN': 0.04,
        'NA': -0.3,
        'NB': -0.2,
        'NF': -0.5,
        'NO': -0.2,
        'OD': 0.0,
        'OP': -0.5,
        'PM': 0.0,
        'SC': 0.0,
        'SA': 0.0,
    }

class PaginationConstants:
    """Constants for paged score reads."""

    DEFAULT_PAGE_SIZE = 10
    MAX_PAGE_SIZE = 100
