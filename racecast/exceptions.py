"""
Custom exception classes

Shared exception hierarchy so every layer raises and catches the same types.
"""


class RacecastError(Exception):
    """Base exception for the prediction system"""
    pass


# =====================================
# Database errors
# =====================================
class DatabaseError(RacecastError):
    """Database related error"""
    pass


class DatabaseConnectionError(DatabaseError):
    """Could not connect to the database"""
    pass


class DatabaseQueryError(DatabaseError):
    """Query execution failed"""
    pass


# =====================================
# Data errors
# =====================================
class DataError(RacecastError):
    """Data related error"""
    pass


class DataValidationError(DataError):
    """Malformed race input; raised before any scoring happens"""
    pass


# =====================================
# API errors
# =====================================
class APIError(RacecastError):
    """API related error"""
    pass


class ExternalAPIError(APIError):
    """External API call failed"""
    pass


class ExternalFetchError(ExternalAPIError):
    """Fetching a meet, race, runner list or result failed"""

    def __init__(self, message: str, scope: str = "unknown"):
        self.scope = scope
        super().__init__(f"[{scope}] {message}")


class QuotaExceededError(APIError):
    """Daily prediction quota for the user's tier is used up"""

    def __init__(self, tier: str, limit: int, message: str | None = None):
        self.tier = tier
        self.limit = limit
        self.remaining = 0
        super().__init__(
            message or f"Daily limit of {limit} predictions exceeded for {tier} tier"
        )


# =====================================
# Configuration errors
# =====================================
class MissingEnvironmentVariableError(RacecastError):
    """A required environment variable is not set"""

    def __init__(self, var_name: str):
        self.var_name = var_name
        super().__init__(f"Environment variable '{var_name}' is not set")
