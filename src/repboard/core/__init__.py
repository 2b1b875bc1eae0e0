"""Core types, configuration, logging and errors."""
