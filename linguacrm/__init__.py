"""Backup, export and import subsystem for the language-training CRM."""

__version__ = "1.0.0"
