"""Core services: configuration, persistence and the aggregate manager."""
