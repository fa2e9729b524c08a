"""Deployment tooling for the GPS Reporting Azure infrastructure."""

__version__ = "0.1.0"
