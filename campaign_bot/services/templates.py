"""
Email template rendering helpers.

Templates live in EMAIL_TEMPLATES_DIR as '<template id>.txt'. They use two
placeholder families:
  [COLUMN]             → value of that column on the contact row
  {{ instruction }}    → prose written by the language model
and may start with a 'Subject: ...' line.
"""
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from campaign_bot.config import EMAIL_TEMPLATES_DIR
from campaign_bot.errors import TemplateNotFound

logger = logging.getLogger('services.templates')

FIELD_RE = re.compile(r'\[([A-Z][A-Z0-9_]*)\]')
INSTRUCTION_RE = re.compile(r'\{\{([^}]+)\}\}')
SUBJECT_RE = re.compile(r'^\s*Subject:\s*', re.IGNORECASE)


@dataclass
class Instruction:
    placeholder: str
    instruction: str
    start: int
    end: int


def load_template(template_id: str, templates_dir: str = None) -> str:
    path = os.path.join(templates_dir or EMAIL_TEMPLATES_DIR, f'{template_id}.txt')
    try:
        with open(path, encoding='utf-8') as fh:
            content = fh.read()
    except OSError as e:
        logger.error("Failed to load template %s: %s", template_id, e)
        raise TemplateNotFound(template_id) from e
    logger.debug("Loaded template: %s", template_id)
    return content


def _field_value(row: Dict[str, Any], name: str):
    candidates = (name, name.lower(), name.replace('_', ' '), name.lower().replace('_', ' '))
    for key in candidates:
        if key in row and row[key] is not None:
            return str(row[key])
    return None


def replace_field_placeholders(template: str, row: Dict[str, Any]) -> str:
    """Substitute [COLUMN] placeholders; unknown ones are left as they are."""
    def _sub(match):
        value = _field_value(row, match.group(1))
        if value is None:
            logger.warning("Placeholder %s not found in row data", match.group(0))
            return match.group(0)
        return value

    return FIELD_RE.sub(_sub, template)


def extract_instructions(template: str) -> List[Instruction]:
    instructions = [
        Instruction(m.group(0), m.group(1).strip(), m.start(), m.end())
        for m in INSTRUCTION_RE.finditer(template)
    ]
    logger.debug("Extracted %d instructions from template", len(instructions))
    return instructions


def replace_instructions(template: str, instructions: List[Instruction], replacements: List[str]) -> str:
    """Splice generated text into the instruction spans, leaving everything else untouched."""
    parts = []
    cursor = 0
    for instruction, text in zip(instructions, replacements):
        parts.append(template[cursor:instruction.start])
        parts.append(text)
        cursor = instruction.end
    parts.append(template[cursor:])
    return ''.join(parts)


def parse_email_template(text: str) -> Tuple[str, str]:
    """Split a leading 'Subject:' line from the body. Returns (subject, body)."""
    lines = text.split('\n')
    subject = ''
    start = 0
    if lines and SUBJECT_RE.match(lines[0]):
        subject = SUBJECT_RE.sub('', lines[0], count=1).strip()
        start = 1
    while start < len(lines) and not lines[start].strip():
        start += 1
    body = '\n'.join(lines[start:]).strip()
    return subject, body


HTML_DOCUMENT = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <style>
    body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px; }}
    p {{ margin: 15px 0; }}
    a {{ color: #0066cc; text-decoration: none; }}
  </style>
</head>
<body>
  {paragraphs}
</body>
</html>"""


def text_to_html(text: str) -> str:
    """Blank-line separated paragraphs → <p>, single newlines → <br>."""
    paragraphs = [p for p in re.split(r'\n\s*\n', text) if p.strip()]
    rendered = [f"<p>{p.strip().replace(chr(10), '<br>')}</p>" for p in paragraphs]
    return HTML_DOCUMENT.format(paragraphs='\n  '.join(rendered))
