"""Per-call credentials for authenticated API requests."""

from dataclasses import dataclass


# Hey future me - this REPLACES the old "set a default Authorization header on the shared
# client" trick. Every authenticated API call takes one of these explicitly, so two
# sessions (or two tests) can never see each other's token. The SessionManager builds
# it when a token is verified and drops it on logout.
@dataclass(frozen=True)
class RequestContext:
    """Credentials attached to one API call."""

    token: str

    def __post_init__(self) -> None:
        if not self.token:
            raise ValueError("RequestContext requires a non-empty token")

    @property
    def headers(self) -> dict[str, str]:
        """HTTP headers carrying the bearer token."""
        return {"Authorization": f"Bearer {self.token}"}

    def __repr__(self) -> str:
        # Never print a live token into logs
        return f"RequestContext(token={self.token[:6]}...)"
