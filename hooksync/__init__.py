"""Keep GitHub webhook registrations in sync with a moving public URL and route their events."""

__version__ = "1.0.0"
