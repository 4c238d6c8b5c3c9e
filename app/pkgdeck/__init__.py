"""pkgdeck - one front end for many Linux package managers."""

__version__ = "0.1.0"
