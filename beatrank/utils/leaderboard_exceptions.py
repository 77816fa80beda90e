"""
Custom exceptions for the ranking engine with operator-facing messages.
"""

class BeatRankException(Exception):
    """Base exception for ranking engine errors."""
    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message

class LeaderboardNotFoundError(BeatRankException):
    """Raised when a leaderboard id does not exist."""
    def __init__(self, leaderboard_id: str):
        self.leaderboard_id = leaderboard_id
        super().__init__(
            f"Leaderboard '{leaderboard_id}' not found",
            "Leaderboard not found."
        )

class ClanNotFoundError(BeatRankException):
    """Raised when a clan tag does not exist."""
    def __init__(self, tag: str):
        self.tag = tag
        super().__init__(
            f"Clan '{tag}' not found",
            f"Clan [{tag}] not found."
        )

class TransientPersistenceError(BeatRankException):
    """Raised when a batch page fails to persist. The next scheduled run corrects it."""
    def __init__(self, operation: str, details: str = None):
        self.operation = operation
        super().__init__(
            f"Persistence failed during {operation}: {details}",
            "Data is being refreshed. Please try again later."
        )

class ProjectionError(BeatRankException):
    """Raised when a provisional projection cannot be computed for a leaderboard."""
    def __init__(self, leaderboard_id: str, reason: str):
        self.leaderboard_id = leaderboard_id
        super().__init__(
            f"Cannot project leaderboard '{leaderboard_id}': {reason}",
            "Rating preview is unavailable for this leaderboard."
        )

class JobAlreadyRunningError(BeatRankException):
    """Raised when a single-instance job is triggered while a run is in progress."""
    def __init__(self, job_name: str):
        self.job_name = job_name
        super().__init__(
            f"Job '{job_name}' is already running",
            f"{job_name} is already running, wait for it to finish."
        )
