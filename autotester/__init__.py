"""Autonomous tester for the website builder: generate, execute, score, learn."""

__version__ = "0.1.0"
