"""Tests for campaign_bot.services.research — channel/site research, fallback and cache."""
from unittest.mock import MagicMock, patch

import pytest
import requests

from campaign_bot.errors import ConfigurationError
from campaign_bot.services.research import (
    Research, ResearchCache, extract_channel_id, fallback_research, fetch_channel,
    fetch_site_content, research_channel, research_for_row, research_site, site_display_name,
)

MOD = 'campaign_bot.services.research'

PAGE = """<html><head><title>Alex Fit</title>
<meta name="description" content="Home workouts for busy people">
<script>var x = 1;</script><style>body { color: red; }</style></head>
<body><h1>Train at home</h1><p>New   programs
every week.</p><noscript>enable js</noscript></body></html>"""


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _response(text='', json_data=None, status=200):
    resp = MagicMock()
    resp.text = text
    resp.status_code = status
    resp.json.return_value = json_data or {}
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f'{status} error')
    return resp


@pytest.fixture
def cache():
    return ResearchCache(ttl=3600, clock=FakeClock())


@pytest.fixture
def youtube_key():
    with patch(f'{MOD}.YOUTUBE_API_KEY', 'yt-key'):
        yield


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

class TestResearchCache:

    def test_hit_within_ttl(self, cache):
        research = Research(summary='s')
        cache.set('k', research)
        cache._clock.now = 3599
        assert cache.get('k') is research

    def test_expired_entry_evicted_on_lookup(self, cache):
        cache.set('k', Research(summary='s'))
        cache._clock.now = 3600
        assert cache.get('k') is None
        assert len(cache) == 0

    def test_invalidate_and_clear(self, cache):
        cache.set('a', Research(summary='a'))
        cache.set('b', Research(summary='b'))
        cache.invalidate('a')
        assert cache.get('a') is None
        cache.clear()
        assert len(cache) == 0


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------

class TestResearchForRow:

    def test_na_link_uses_site_research(self, make_row, cache):
        with patch(f'{MOD}.research_site', return_value=Research(summary='site')) as site, \
                patch(f'{MOD}.research_channel') as channel:
            research_for_row(make_row(yt_link='N/A', website='alexfit.com'), cache)
        site.assert_called_once_with('alexfit.com', 'fitness', cache=cache)
        channel.assert_not_called()

    def test_other_links_use_channel_research(self, make_row, cache):
        with patch(f'{MOD}.research_site') as site, \
                patch(f'{MOD}.research_channel', return_value=Research(summary='yt')) as channel:
            research_for_row(make_row(yt_link='https://youtube.com/@alexfit'), cache)
        channel.assert_called_once_with('https://youtube.com/@alexfit', 'fitness', cache=cache)
        site.assert_not_called()

    def test_lowercase_na_is_a_channel_link(self, make_row, cache):
        with patch(f'{MOD}.research_site') as site, \
                patch(f'{MOD}.research_channel', return_value=Research(summary='yt')):
            research_for_row(make_row(yt_link='n/a'), cache)
        site.assert_not_called()


# ---------------------------------------------------------------------------
# Site research
# ---------------------------------------------------------------------------

class TestSiteResearch:

    def test_extracts_text_and_summarizes(self, cache):
        with patch(f'{MOD}.requests.get', return_value=_response(PAGE)) as get, \
                patch(f'{MOD}.openai_client.complete', return_value='A fitness site.') as complete:
            research = research_site('www.alexfit.com', 'fitness', cache=cache)
        assert get.call_args[0][0] == 'https://www.alexfit.com'
        assert get.call_args[1]['timeout'] == 10
        assert research.summary == 'A fitness site.'
        assert research.display_name == 'alexfit.com'
        assert research.recent_titles == []
        assert not research.degraded
        prompt = complete.call_args[0][0]
        assert 'Title: Alex Fit' in prompt
        assert 'Home workouts for busy people' in prompt
        assert 'New programs every week.' in prompt
        assert 'var x' not in prompt
        assert 'enable js' not in prompt

    def test_cached_for_repeat_lookups(self, cache):
        with patch(f'{MOD}.requests.get', return_value=_response(PAGE)) as get, \
                patch(f'{MOD}.openai_client.complete', return_value='summary'):
            first = research_site('alexfit.com', 'fitness', cache=cache)
            second = research_site('alexfit.com', 'fitness', cache=cache)
        assert first is second
        assert get.call_count == 1
        assert cache.get('website:alexfit.com') is first

    def test_fetch_failure_degrades_and_is_not_cached(self, cache):
        with patch(f'{MOD}.requests.get', side_effect=requests.Timeout('slow')):
            research = research_site('alexfit.com', 'fitness', cache=cache)
        assert research.degraded
        assert research.display_name == 'Website Creator'
        assert 'fitness' in research.summary
        assert len(cache) == 0

    def test_http_error_degrades(self, cache):
        with patch(f'{MOD}.requests.get', return_value=_response(status=404)):
            assert research_site('alexfit.com', 'fitness', cache=cache).degraded

    def test_missing_website_degrades(self, cache):
        assert research_site('', 'fitness', cache=cache).degraded

    def test_missing_model_key_raises(self, cache):
        with patch(f'{MOD}.requests.get', return_value=_response(PAGE)), \
                patch('campaign_bot.extensions.openai_client', None):
            with pytest.raises(ConfigurationError):
                research_site('alexfit.com', 'fitness', cache=cache)

    def test_long_content_truncated(self):
        page = f'<html><body><p>{"word " * 3000}</p></body></html>'
        with patch(f'{MOD}.requests.get', return_value=_response(page)):
            content = fetch_site_content('alexfit.com')
        assert len(content) == 5003
        assert content.endswith('...')

    def test_display_name(self):
        assert site_display_name('https://www.roamandrest.com/about') == 'roamandrest.com'
        assert site_display_name('blog.example.org') == 'blog.example.org'


# ---------------------------------------------------------------------------
# Channel research
# ---------------------------------------------------------------------------

class TestChannelResearch:

    @pytest.mark.parametrize('url, expected', [
        ('https://youtube.com/@wanderlustjane', '@wanderlustjane'),
        ('youtube.com/@wanderlustjane/videos', '@wanderlustjane'),
        ('https://www.youtube.com/channel/UC123', 'UC123'),
        ('https://youtube.com/c/PriyaCooks', 'PriyaCooks'),
        ('https://youtube.com/user/derek', 'derek'),
        ('https://youtube.com/watch?v=abc', None),
        ('', None),
    ])
    def test_extract_channel_id(self, url, expected):
        assert extract_channel_id(url) == expected

    def test_missing_api_key_raises(self, cache):
        with patch(f'{MOD}.YOUTUBE_API_KEY', None):
            with pytest.raises(ConfigurationError):
                research_channel('https://youtube.com/@x', 'travel', cache=cache)

    def test_fetch_channel_by_handle(self, youtube_key):
        responses = [
            _response(json_data={'items': [{'snippet': {'channelId': 'UC9', 'title': 'Wanderlust Jane'}}]}),
            _response(json_data={'items': [{'snippet': {'title': 'Lisbon'}}, {'snippet': {'title': 'Porto'}}]}),
        ]
        with patch(f'{MOD}.requests.get', side_effect=responses) as get:
            name, titles = fetch_channel('@wanderlustjane')
        assert name == 'Wanderlust Jane'
        assert titles == ['Lisbon', 'Porto']
        assert get.call_args_list[0][1]['params']['q'] == 'wanderlustjane'
        assert get.call_args_list[1][1]['params']['channelId'] == 'UC9'
        assert get.call_args_list[1][1]['params']['maxResults'] == 5

    def test_research_channel_success_is_cached(self, cache, youtube_key):
        with patch(f'{MOD}.fetch_channel', return_value=('Jane', ['Lisbon'])) as fetch, \
                patch(f'{MOD}.openai_client.complete', return_value='Travel vlogs.'):
            first = research_channel('https://youtube.com/@jane', 'travel', cache=cache)
            second = research_channel('https://youtube.com/@jane', 'travel', cache=cache)
        assert first is second
        assert first.display_name == 'Jane'
        assert first.recent_titles == ['Lisbon']
        fetch.assert_called_once_with('@jane')

    def test_unknown_channel_degrades(self, cache, youtube_key):
        with patch(f'{MOD}.requests.get', return_value=_response(json_data={'items': []})):
            research = research_channel('https://youtube.com/@ghost', 'travel', cache=cache)
        assert research.degraded
        assert research.display_name == 'YouTube Creator'
        assert len(cache) == 0

    def test_unparseable_link_degrades(self, cache, youtube_key):
        research = research_channel('not a channel', 'travel', cache=cache)
        assert research.degraded


class TestFallback:

    def test_fallback_mentions_niche(self):
        research = fallback_research('gaming')
        assert research.summary == 'A gaming YouTube channel creating content for their audience.'
        assert research.degraded

    def test_fallback_without_niche(self):
        assert 'content' in fallback_research('', 'website').summary
