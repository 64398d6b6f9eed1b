"""Configuration, logging and database plumbing."""
