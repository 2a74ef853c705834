"""Meeting audio to protocol pipeline."""

__version__ = "0.1.0"
