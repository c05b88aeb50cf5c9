"""Rightsizing recommendations and an auditable apply workflow for infrastructure resources."""

__version__ = "1.0.0"
