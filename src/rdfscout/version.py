"""Version information for :mod:`rdfscout`."""

__all__ = [
    "VERSION",
]

VERSION = "0.3.0"
