"""Chat gateway and usage monitoring for hosted conversational agents."""

__version__ = "1.0.0"
