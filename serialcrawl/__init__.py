"""serialcrawl: resumable, polite crawler for serialized web fiction."""

__version__ = "0.1.0"
