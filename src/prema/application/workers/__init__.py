"""Background workers - polling loops owned by open screens."""

from prema.application.workers.message_poll_worker import ConversationPoller

__all__ = ["ConversationPoller"]
