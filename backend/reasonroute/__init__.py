"""
reasonroute: keyword intent routing with chain-of-thought and
self-consistency reasoning for LLM chat services.
"""

__version__ = "1.0.0"
