"""Policy evidence mapper: ingest policies, map them to compliance controls, validate evidence."""

__version__ = "1.0.0"
