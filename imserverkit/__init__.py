"""Server-side toolkit for an instant-messaging backend: models, IM client, caches and sequences."""

__version__ = "0.1.0"