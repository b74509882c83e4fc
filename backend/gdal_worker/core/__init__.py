"""Configuration, error taxonomy and logging setup for the worker."""
