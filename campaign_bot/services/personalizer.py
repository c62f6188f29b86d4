"""
Personalizer — turns a template id + contact row + research into a ready-to-send email.
"""
import logging
from dataclasses import dataclass

from campaign_bot.config import COL_FOLLOWERS, COL_NAME, COL_NICHE, COL_WEBSITE
from campaign_bot.errors import ConfigurationError, ContentGenerationFailed
from campaign_bot.models.contact import ContactRow
from campaign_bot.services import openai_client
from campaign_bot.services.research import Research
from campaign_bot.services.templates import (
    extract_instructions, load_template, parse_email_template,
    replace_field_placeholders, replace_instructions, text_to_html,
)

logger = logging.getLogger('services.personalizer')


@dataclass
class PersonalizedEmail:
    subject: str
    html: str
    template_id: str


def render(template_id: str, row: ContactRow, research: Research, templates_dir: str = None) -> PersonalizedEmail:
    """
    Fill a template for one contact.

    Field placeholders are substituted first, then every {{ instruction }}
    is resolved by the language model. A template without instructions never
    calls the model. Any model failure raises ContentGenerationFailed.
    """
    name = row.text(COL_NAME)
    logger.info("Personalizing template %s for %s", template_id, name)

    text = load_template(template_id, templates_dir)
    text = replace_field_placeholders(text, row)

    instructions = extract_instructions(text)
    if instructions:
        replacements = [generate_content(i.instruction, row, research) for i in instructions]
        text = replace_instructions(text, instructions, replacements)

    subject, body = parse_email_template(text)
    return PersonalizedEmail(
        subject=subject or f'Following up - {name}',
        html=text_to_html(body),
        template_id=template_id,
    )


def generate_content(instruction: str, row: ContactRow, research: Research) -> str:
    prompt = (
        "You are an AI assistant helping to personalize email outreach to content creators.\n\n"
        "Context about the creator:\n"
        f"- Name: {row.text(COL_NAME)}\n"
        f"- Niche: {row.text(COL_NICHE)}\n"
        f"- Website: {row.text(COL_WEBSITE) or 'n/a'}\n"
        f"- Followers: {row.text(COL_FOLLOWERS) or 'unknown'}\n"
        f"- Channel Summary: {research.summary}\n"
        f"- Recent Videos: {', '.join(research.recent_titles) or 'No recent videos available'}\n\n"
        f"Task: {instruction}\n\n"
        "Write natural, conversational text that sounds personal and genuine. Keep it concise "
        "(under 50 words unless the instruction specifically asks for more). Do not use overly "
        "salesy language."
    )
    try:
        content = openai_client.complete(prompt, max_tokens=200, temperature=0.8)
    except ConfigurationError:
        raise
    except Exception as e:
        logger.error("Content generation failed for instruction %r: %s", instruction[:40], e)
        raise ContentGenerationFailed(str(e)) from e
    logger.debug("Generated content for instruction: %s...", instruction[:30])
    return content
