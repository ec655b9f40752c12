"""
Groq API client for the admin insights endpoint.

The admin dashboard sends a prompt plus a blob of orders/inventory data; this
client turns that into one completion. Output is free text shown to the admin
as-is. Returns None on any failure so the caller can answer with a clean error.
"""

import json
import logging
import time
from typing import Any, Optional

from groq import Groq, APIError, APITimeoutError, RateLimitError

from medorder.core.config import settings

# NEVER log API keys
logger = logging.getLogger(__name__)


def build_prompt(prompt: str, context: Any) -> str:
    """Admin prompt followed by the data it refers to, pretty-printed as JSON."""
    return f"{prompt}\n\nHere is the data to analyze:\n\n{json.dumps(context, indent=2, default=str)}"


class GroqClient:
    """
    Minimal wrapper for the Groq chat completions API.

    - Temperature: low, summaries should be stable for the same data
    - Max tokens: bounded, dashboard cards are short
    - Retries: timeouts and rate limits only, with exponential backoff
    """

    MODEL = "llama-3.3-70b-versatile"
    TEMPERATURE = 0.2
    MAX_TOKENS = 1024
    TIMEOUT_SECONDS = 30

    def __init__(self, api_key: Optional[str] = None):
        api_key = api_key if api_key is not None else settings.GROQ_API_KEY

        if not api_key:
            logger.warning(
                "⚠️ GROQ_API_KEY not found in environment. "
                "AI insights endpoint will be DISABLED."
            )
            self.client = None
        else:
            self.client = Groq(api_key=api_key, timeout=self.TIMEOUT_SECONDS)
            logger.info("✅ Groq client initialized successfully")

    def is_available(self) -> bool:
        return self.client is not None

    def generate(self, prompt: str, max_retries: int = 2) -> Optional[str]:
        """Return the completion text, or None if the call failed."""
        if not self.is_available():
            logger.debug("Groq client not available - skipping LLM call")
            return None

        for attempt in range(max_retries + 1):
            try:
                response = self.client.chat.completions.create(
                    model=self.MODEL,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=self.TEMPERATURE,
                    max_tokens=self.MAX_TOKENS,
                    stream=False,
                )

                if response.choices and response.choices[0].message.content:
                    content = response.choices[0].message.content
                    logger.debug(f"LLM response received: {len(content)} chars (attempt {attempt+1})")
                    return content
                logger.warning(f"Unexpected Groq response structure: {response}")
                return None

            except APITimeoutError:
                if attempt < max_retries:
                    wait_time = 0.5 * (2 ** attempt)  # 0.5s, 1s
                    logger.warning(f"⏱️ Groq timeout, retry {attempt+1}/{max_retries} after {wait_time}s")
                    time.sleep(wait_time)
                else:
                    logger.warning(f"⏱️ Groq API timeout after {max_retries} retries")
                    return None

            except RateLimitError:
                if attempt < max_retries:
                    wait_time = 1.0 * (2 ** attempt)  # 1s, 2s
                    logger.warning(f"⚠️ Groq rate limit, retry {attempt+1}/{max_retries} after {wait_time}s")
                    time.sleep(wait_time)
                else:
                    logger.warning("⚠️ Groq API rate limit exceeded after retries")
                    return None

            except APIError as e:
                logger.error(f"❌ Groq API error (permanent): {e}")
                return None

        return None


_groq_client: Optional[GroqClient] = None


def get_groq_client() -> GroqClient:
    """Get or create singleton Groq client instance."""
    global _groq_client
    if _groq_client is None:
        _groq_client = GroqClient()
    return _groq_client
