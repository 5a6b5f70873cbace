"""Core services: configuration-backed collaborators, persistence, events and queue."""
