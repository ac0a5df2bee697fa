"""Clinical assessment form backed by Gemini."""

__version__ = "1.0.0"
