"""craft: prepare release branches and publish release artifacts."""

__version__ = "0.4.0"
