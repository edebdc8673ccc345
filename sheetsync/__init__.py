"""Keeps a set of spreadsheets mirror-consistent by polling, checkpointing and broadcasting."""

__version__ = "0.1.0"
