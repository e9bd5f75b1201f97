"""PNFB Holdings property portfolio screen."""

__version__ = "0.1.0"
