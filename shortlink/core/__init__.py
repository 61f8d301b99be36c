"""Application core: configuration, persistence, Redis, security and observability."""
