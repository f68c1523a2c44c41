"""Concrete adapters for the service-layer ports (SQL, Redis, JWT, legacy provider)."""
