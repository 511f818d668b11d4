"""scriptdeck: run and watch project scripts (build/test/dev) from one place."""

__version__ = "0.1.0"
