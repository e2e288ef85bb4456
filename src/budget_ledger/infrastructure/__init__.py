"""Infrastructure adapters: persistence, settings, logging."""
