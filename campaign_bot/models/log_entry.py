"""
Slot log entries — the string written into a $EMAIL_n column after a send.

Format (segments joined by ' | '):
    <iso timestamp> | <message id> | <template id> | <SENT|FAILED>
    [ | Subject: <text>] [ | HTML: <text>]
"""
from dataclasses import dataclass
from typing import Optional

SEPARATOR = ' | '
SUBJECT_MARKER = 'Subject: '
HTML_MARKER = 'HTML: '

STATUS_SENT = 'SENT'
STATUS_FAILED = 'FAILED'


class LogEntryParseError(ValueError):
    """Slot value does not have the four mandatory segments."""


@dataclass
class LogEntry:
    timestamp: str
    message_id: str
    template_id: str
    status: str
    subject: Optional[str] = None
    html: Optional[str] = None

    def format(self) -> str:
        parts = [self.timestamp, self.message_id, self.template_id, self.status]
        if self.subject:
            parts.append(f'{SUBJECT_MARKER}{self.subject}')
        if self.html:
            parts.append(f'{HTML_MARKER}{self.html}')
        return SEPARATOR.join(parts)

    @property
    def key(self):
        return (self.timestamp, self.message_id, self.template_id, self.status)


def format_log_entry(timestamp, message_id, template_id, status, subject=None, html=None) -> str:
    return LogEntry(timestamp, message_id, template_id, status, subject, html).format()


def parse_log_entry(value: str) -> LogEntry:
    """
    Parse a slot value back into a LogEntry.

    The optional segments may be absent; they parse to None. The HTML segment
    is located by its marker, so a ' | ' inside the subject does not break
    parsing.
    """
    if not value or not value.strip():
        raise LogEntryParseError('empty log entry')

    parts = value.split(SEPARATOR, 4)
    if len(parts) < 4:
        raise LogEntryParseError(f'expected at least 4 segments, got {len(parts)}')

    timestamp, message_id, template_id, status = (p.strip() for p in parts[:4])
    subject = html = None

    if len(parts) == 5:
        rest = parts[4]
        if rest.startswith(SUBJECT_MARKER):
            rest = rest[len(SUBJECT_MARKER):]
            split_at = rest.find(SEPARATOR + HTML_MARKER)
            if split_at == -1:
                subject = rest
            else:
                subject = rest[:split_at]
                html = rest[split_at + len(SEPARATOR) + len(HTML_MARKER):]
        elif rest.startswith(HTML_MARKER):
            html = rest[len(HTML_MARKER):]

    return LogEntry(timestamp, message_id, template_id, status, subject or None, html or None)
