from streaks.domain.contributions import ContributionsSnapshot


class ContributionsError(Exception):
    """Base error for contribution fetches.

    ``stale_snapshot`` holds the last stored snapshot for the user, even an
    expired one, so callers can keep showing data next to the error.
    """

    message = "Failed to load GitHub contributions"

    def __init__(
        self,
        message: str | None = None,
        stale_snapshot: ContributionsSnapshot | None = None,
    ) -> None:
        super().__init__(message or self.message)
        self.stale_snapshot = stale_snapshot


class InvalidUsernameError(ContributionsError):
    """Raised when the username is empty or unusable."""

    message = "Invalid GitHub username"


class UserNotFoundError(ContributionsError):
    """Raised when GitHub answers 404 for the user."""

    message = "GitHub user not found"


class RateLimitedError(ContributionsError):
    """Raised when GitHub answers 429."""

    message = "GitHub API rate limit exceeded. Please try again later."


class NetworkError(ContributionsError):
    """Raised on transport failures and timeouts; the cause is chained."""

    message = "Network error"


class ParseError(ContributionsError):
    """Raised when a response cannot be turned into contribution days."""

    message = "Failed to parse GitHub data"


class InvalidTokenError(ContributionsError):
    """Raised when GitHub rejects the provided token."""

    message = "GitHub token is invalid"
