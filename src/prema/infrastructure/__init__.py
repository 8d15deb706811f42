"""Infrastructure layer - HTTP integration, persistence and observability."""
