"""PracticeLLD backend: LLD interview question generation and model A/B rounds."""

__version__ = "1.0.0"
