"""Session snapshot entity."""

from dataclasses import dataclass

from prema.domain.entities.user import User


@dataclass(frozen=True)
class SessionState:
    """Immutable snapshot of "who is logged in".

    Hey future me - token and current_user move TOGETHER. The only moment one is set
    without the other is inside SessionManager while a stored token is being verified,
    and that intermediate state is never published to observers.
    """

    token: str | None = None
    current_user: User | None = None
    loading: bool = True

    @property
    def is_authenticated(self) -> bool:
        """True when a verified token and its user are both present."""
        return self.token is not None and self.current_user is not None
