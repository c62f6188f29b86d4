"""Tests for campaign_bot.services.personalizer — template + row + research → email."""
from unittest.mock import patch

import pytest

from campaign_bot.errors import ConfigurationError, ContentGenerationFailed
from campaign_bot.services.personalizer import generate_content, render
from campaign_bot.services.research import Research

COMPLETE = 'campaign_bot.services.personalizer.openai_client.complete'


@pytest.fixture
def templates(tmp_path):
    (tmp_path / 'email_1.txt').write_text(
        'Subject: Idea for [NAME]\n\nHi [NAME],\n\n{{compliment their [NICHE] content}}\n\nBest',
        encoding='utf-8',
    )
    (tmp_path / 'email_3.txt').write_text('Hi [NAME],\n\nLast note.', encoding='utf-8')
    return str(tmp_path)


@pytest.fixture
def research():
    return Research(summary='Home workout videos.', recent_titles=['Leg day', 'Core'])


class TestRender:

    def test_fields_then_instructions(self, templates, research, make_row):
        with patch(COMPLETE, return_value='Love your home workouts!') as complete:
            email = render('email_1', make_row(), research, templates)
        assert email.subject == 'Idea for Alex'
        assert email.template_id == 'email_1'
        assert '<p>Hi Alex,</p>' in email.html
        assert '<p>Love your home workouts!</p>' in email.html
        prompt = complete.call_args[0][0]
        # field placeholders inside an instruction are filled before the model sees it
        assert 'Task: compliment their fitness content' in prompt
        assert 'Leg day, Core' in prompt

    def test_no_instructions_never_calls_model(self, templates, research, make_row):
        with patch(COMPLETE) as complete:
            email = render('email_3', make_row(), research, templates)
        complete.assert_not_called()
        assert email.subject == 'Following up - Alex'
        assert '<p>Last note.</p>' in email.html

    def test_model_failure_raises(self, templates, research, make_row):
        with patch(COMPLETE, side_effect=RuntimeError('rate limited')):
            with pytest.raises(ContentGenerationFailed, match='rate limited'):
                render('email_1', make_row(), research, templates)

    def test_bundled_email_1(self, research, make_row):
        with patch(COMPLETE, return_value='Generated line.') as complete:
            email = render('email_1', make_row(), research)
        assert 'Alex' in email.subject
        assert '{{' not in email.html
        assert '[NAME]' not in email.html
        assert complete.call_count == 2


class TestGenerateContent:

    def test_missing_key_propagates(self, research, make_row):
        with patch(COMPLETE, side_effect=ConfigurationError('OPENAI_API_KEY not configured')):
            with pytest.raises(ConfigurationError):
                generate_content('say hi', make_row(), research)

    def test_prompt_context(self, make_row):
        with patch(COMPLETE, return_value='ok') as complete:
            assert generate_content('say hi', make_row(yt_followers='1200'), Research(summary='s')) == 'ok'
        prompt = complete.call_args[0][0]
        assert '- Name: Alex' in prompt
        assert '- Followers: 1200' in prompt
        assert 'No recent videos available' in prompt
        assert complete.call_args[1] == {'max_tokens': 200, 'temperature': 0.8}
