"""
OpenAI chat helpers shared by research summaries and template personalization.
"""
import logging

from campaign_bot import extensions
from campaign_bot.config import OPENAI_MODEL
from campaign_bot.errors import ConfigurationError

logger = logging.getLogger('services.openai')


def _chat_completion(**kwargs):
    """Route chat completion through the OpenAI circuit breaker."""
    from campaign_bot.services.circuit_breaker import get_breaker
    client = extensions.openai_client
    if client is None:
        raise ConfigurationError('OPENAI_API_KEY not configured')
    cb = get_breaker('openai')
    return cb.call(client.chat.completions.create, **kwargs)


def complete(prompt: str, max_tokens: int = 150, temperature: float = 0.7) -> str:
    """Single-turn completion, returns the stripped message text."""
    response = _chat_completion(
        model=OPENAI_MODEL,
        messages=[{"role": "user", "content": prompt}],
        max_tokens=max_tokens,
        temperature=temperature,
    )
    content = response.choices[0].message.content or ''
    return content.strip()
