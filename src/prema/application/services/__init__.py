"""Application services - session state and the state behind each screen."""

from prema.application.services.connections_service import (
    ConversationList,
    LikesInbox,
    MatchesBoard,
    format_unread_badge,
)

# Hey future me - LikeOutcome lives next to DiscoveryFeed but LikesInbox returns it too.
# Whatever hands one back, the caller MUST branch on is_match.
from prema.application.services.discovery_feed import DiscoveryFeed, LikeOutcome
from prema.application.services.filter_preferences import FilterPreferencesService
from prema.application.services.location_update_service import LocationAutoUpdater
from prema.application.services.photo_service import (
    PhotoFile,
    PhotoService,
    extract_photo_filename,
    resolve_photo_url,
)
from prema.application.services.push_registration_service import (
    PushRegistrationService,
)
from prema.application.services.session_manager import SessionManager
from prema.application.services.side_effects import (
    BestEffortTaskRunner,
    SideEffectResult,
)

__all__ = [
    "BestEffortTaskRunner",
    "ConversationList",
    "DiscoveryFeed",
    "FilterPreferencesService",
    "LikeOutcome",
    "LikesInbox",
    "LocationAutoUpdater",
    "MatchesBoard",
    "PhotoFile",
    "PhotoService",
    "PushRegistrationService",
    "SessionManager",
    "SideEffectResult",
    "extract_photo_filename",
    "format_unread_badge",
    "resolve_photo_url",
]
