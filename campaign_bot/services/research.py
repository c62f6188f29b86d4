"""
Research provider — channel and website summaries used as personalization context.

Two variants, picked per row:
  - channel research: YouTube Data API (channel name + recent video titles),
    summarized by the language model
  - site research: used when the row's channel link is the literal 'N/A';
    fetches the website (hard 10s timeout), extracts text with BeautifulSoup,
    summarized by the language model

Ordinary failures (quota, timeouts, bad HTML, model errors) never raise: the
caller gets a degraded Research built from the niche and the pipeline carries
on. Only missing configuration raises. Successful results are cached for one
hour under 'channel:<link>' / 'website:<url>'; degraded results are not cached.
"""
import logging
import re
import threading
import time
from dataclasses import asdict, dataclass, field
from typing import List, Optional, Tuple
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

from campaign_bot.config import (
    CHANNEL_NOT_AVAILABLE, COL_CHANNEL_LINK, COL_NICHE, COL_WEBSITE,
    MAX_WEBSITE_CONTENT_LENGTH, RECENT_VIDEO_COUNT, RESEARCH_CACHE_TTL_SECONDS,
    SITE_FETCH_TIMEOUT_SECONDS, YOUTUBE_API_KEY, YOUTUBE_API_URL,
)
from campaign_bot.errors import ConfigurationError
from campaign_bot.models.contact import ContactRow
from campaign_bot.services import openai_client
from campaign_bot.services.circuit_breaker import get_breaker

logger = logging.getLogger('services.research')

USER_AGENT = 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36'
YOUTUBE_TIMEOUT_SECONDS = 15


@dataclass
class Research:
    summary: str
    recent_titles: List[str] = field(default_factory=list)
    display_name: str = ''
    degraded: bool = False

    def to_dict(self):
        return asdict(self)


class ResearchCache:
    """
    TTL map of research results. Entries expire `ttl` seconds after insertion
    and are evicted when looked up, never swept. Safe to share between threads.
    """

    def __init__(self, ttl: float = RESEARCH_CACHE_TTL_SECONDS, clock=time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Research]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, research = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return research

    def set(self, key: str, research: Research) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl, research)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self):
        with self._lock:
            return len(self._entries)


default_cache = ResearchCache()


def clear_cache():
    default_cache.clear()
    logger.info("Research cache cleared")


# ── Entry point ───────────────────────────────────────────────────────────────

def research_for_row(row: ContactRow, cache: ResearchCache = None) -> Research:
    """Site research when the channel link is 'N/A', channel research otherwise."""
    niche = row.text(COL_NICHE)
    channel_link = row.text(COL_CHANNEL_LINK)
    if channel_link == CHANNEL_NOT_AVAILABLE:
        return research_site(row.text(COL_WEBSITE), niche, cache=cache)
    return research_channel(channel_link, niche, cache=cache)


def fallback_research(niche: str, kind: str = 'YouTube channel', display_name: str = 'Creator') -> Research:
    """Generic context used when research fails."""
    niche = niche or 'content'
    return Research(
        summary=f"A {niche} {kind} creating content for their audience.",
        recent_titles=[],
        display_name=display_name,
        degraded=True,
    )


# ── Channel research ──────────────────────────────────────────────────────────

def research_channel(channel_link: str, niche: str, cache: ResearchCache = None) -> Research:
    if not YOUTUBE_API_KEY:
        raise ConfigurationError('YOUTUBE_API_KEY not configured')
    if cache is None:
        cache = default_cache

    key = f'channel:{channel_link}'
    cached = cache.get(key)
    if cached is not None:
        logger.debug("Using cached research for %s", key)
        return cached

    try:
        identifier = extract_channel_id(channel_link)
        if not identifier:
            raise ValueError(f"Invalid YouTube URL: {channel_link!r}")
        channel_name, titles = fetch_channel(identifier)
        summary = _summarize(
            f"Given the following information about a YouTube channel, write a brief 2-3 sentence "
            f"summary that can be used for personalization context in an email:\n\n"
            f"Channel Name: {channel_name}\n"
            f"Niche: {niche}\n"
            f"Recent Video Titles: {', '.join(titles) or 'No recent videos available'}\n\n"
            f"Write a natural, concise summary that highlights what makes this channel unique "
            f"and relevant. Keep it under 80 words."
        )
    except ConfigurationError:
        raise
    except Exception as e:
        logger.warning("Channel research failed for %s, using fallback: %s", channel_link, e)
        return fallback_research(niche, 'YouTube channel', 'YouTube Creator')

    research = Research(summary=summary, recent_titles=titles, display_name=channel_name)
    cache.set(key, research)
    logger.info("Research completed for channel: %s", channel_name)
    return research


def extract_channel_id(url: str) -> Optional[str]:
    """
    '/@handle' → '@handle', '/channel/<id>' → '<id>', '/c/<name>' or
    '/user/<name>' → '<name>'. None for anything else.
    """
    if not url:
        return None
    if '://' not in url:
        url = f'https://{url}'
    path = urlparse(url).path

    match = re.match(r'^/@([^/]+)', path)
    if match:
        return f'@{match.group(1)}'
    match = re.search(r'/channel/([^/]+)', path)
    if match:
        return match.group(1)
    match = re.search(r'/(?:c|user)/([^/]+)', path)
    if match:
        return match.group(1)
    return None


def _youtube_get(resource: str, **params) -> dict:
    params['key'] = YOUTUBE_API_KEY
    resp = get_breaker('youtube').call(
        requests.get, f'{YOUTUBE_API_URL}/{resource}', params=params, timeout=YOUTUBE_TIMEOUT_SECONDS,
    )
    resp.raise_for_status()
    return resp.json()


def fetch_channel(identifier: str) -> Tuple[str, List[str]]:
    """Resolve a channel and return (channel name, most recent video titles)."""
    if identifier.startswith('@'):
        handle = identifier[1:]
        items = _youtube_get('search', part='snippet', q=handle, type='channel', maxResults=1).get('items') or []
        if not items:
            raise LookupError(f"Channel {identifier} not found")
        snippet = items[0].get('snippet', {})
        channel_id = snippet.get('channelId', '')
        channel_name = snippet.get('title') or handle
    else:
        items = _youtube_get('channels', part='snippet,statistics', id=identifier).get('items') or []
        if not items:
            raise LookupError(f"Channel {identifier} not found")
        channel_id = items[0].get('id', identifier)
        channel_name = items[0].get('snippet', {}).get('title', '')

    videos = _youtube_get(
        'search', part='snippet', channelId=channel_id, order='date', type='video',
        maxResults=RECENT_VIDEO_COUNT,
    ).get('items') or []
    titles = [v.get('snippet', {}).get('title', '') for v in videos]
    titles = [t for t in titles if t]

    logger.info("Fetched YouTube data for channel: %s (%d videos)", channel_name, len(titles))
    return channel_name, titles


# ── Site research ─────────────────────────────────────────────────────────────

def research_site(website: str, niche: str, cache: ResearchCache = None) -> Research:
    if cache is None:
        cache = default_cache
    if not website:
        logger.warning("No website to research, using fallback")
        return fallback_research(niche, 'website', 'Website Creator')

    key = f'website:{website}'
    cached = cache.get(key)
    if cached is not None:
        logger.debug("Using cached research for %s", key)
        return cached

    try:
        content = fetch_site_content(website)
        summary = _summarize(
            f"Given the following information about a website, write a brief 2-3 sentence "
            f"summary that can be used for personalization context in an email:\n\n"
            f"Website URL: {website}\n"
            f"Niche: {niche}\n"
            f"Website Content:\n{content}\n\n"
            f"Write a natural, concise summary that highlights what makes this website/creator "
            f"unique and relevant. Keep it under 80 words. Focus on the main purpose, content "
            f"type, and what makes them stand out."
        )
    except ConfigurationError:
        raise
    except Exception as e:
        logger.warning("Website research failed for %s, using fallback: %s", website, e)
        return fallback_research(niche, 'website', 'Website Creator')

    research = Research(summary=summary, recent_titles=[], display_name=site_display_name(website))
    cache.set(key, research)
    logger.info("Website research completed for: %s", research.display_name)
    return research


def _normalize_url(website: str) -> str:
    url = website.strip()
    if not url.startswith(('http://', 'https://')):
        url = f'https://{url}'
    return url


def site_display_name(website: str) -> str:
    """Hostname without a leading 'www.'."""
    host = urlparse(_normalize_url(website)).hostname
    if not host:
        return website
    return re.sub(r'^www\.', '', host)


def fetch_site_content(website: str) -> str:
    """Title, meta description and visible body text, truncated for the prompt."""
    url = _normalize_url(website)
    logger.info("Fetching website content from: %s", url)
    resp = requests.get(url, headers={'User-Agent': USER_AGENT}, timeout=SITE_FETCH_TIMEOUT_SECONDS)
    resp.raise_for_status()

    soup = BeautifulSoup(resp.text, 'html.parser')
    for tag in soup(['script', 'style', 'noscript']):
        tag.decompose()

    title = soup.title.get_text(strip=True) if soup.title else ''
    meta = soup.find('meta', attrs={'name': re.compile(r'^description$', re.I)})
    description = meta.get('content', '').strip() if meta else ''
    body = soup.body or soup
    text = re.sub(r'\s+', ' ', body.get_text(' ', strip=True)).strip()

    content = ''
    if title:
        content += f'Title: {title}\n\n'
    if description:
        content += f'Description: {description}\n\n'
    content += text

    if len(content) > MAX_WEBSITE_CONTENT_LENGTH:
        content = content[:MAX_WEBSITE_CONTENT_LENGTH] + '...'
    logger.debug("Extracted %d characters from website", len(content))
    return content


def _summarize(details: str) -> str:
    prompt = (
        "You are an AI assistant helping with email outreach to content creators.\n\n" + details
    )
    return openai_client.complete(prompt, max_tokens=150, temperature=0.7)
