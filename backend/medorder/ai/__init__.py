"""Groq text generation for the admin insights endpoint.

The model only writes prose about data the admin sends it. It never reads or
writes the order store.
"""

from .groq_client import GroqClient, get_groq_client, build_prompt

__all__ = ["GroqClient", "get_groq_client", "build_prompt"]
