"""Application layer - session, UI-facing services and background workers."""
