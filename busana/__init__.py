"""Busana Dashboard - bulk data import service."""

__version__ = "0.4.0"
