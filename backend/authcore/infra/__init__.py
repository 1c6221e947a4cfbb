"""Infrastructure adapters for the service-layer ports."""
