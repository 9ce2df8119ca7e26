"""Core infrastructure: settings, logging, errors, database."""
