"""Configuration, logging, exceptions and metrics shared by all modules."""
