"""Grade-distribution chatbot: entity extraction, context and response assembly."""

__version__ = "0.1.0"
