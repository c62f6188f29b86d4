"""
RQ job functions — executed inside a worker's work horse.

process_row_job: next slot → validate recipient → research → personalize → send → write back
send_email_job:  validate recipient → send → write back

Exceptions propagate to RQ, which applies the retry policy. Delivery failures
are not exceptions: they are written into the slot as a FAILED entry and the
slot counts as used.
"""
import logging

from rq import get_current_job

from campaign_bot.config import BOT_NAME, COL_EMAIL, COL_SENT, COL_SENT_BY, ROW_LEASE_ENABLED
from campaign_bot.errors import InvalidRecipient, RowNotFound
from campaign_bot.models.contact import ContactRow
from campaign_bot.models.log_entry import format_log_entry
from campaign_bot.pipeline.lease import RowLease
from campaign_bot.pipeline.policy import next_slot, template_for
from campaign_bot.services.mailer import send_mail, validate_recipient
from campaign_bot.services.personalizer import render
from campaign_bot.services.research import research_for_row
from campaign_bot.stores.base import get_row_store

logger = logging.getLogger('pipeline.jobs')


def _progress(job, percent):
    if job is None:
        return
    job.meta['progress'] = percent
    job.save_meta()


def write_outcome(store, row_id: int, slot_column: str, entry: str) -> None:
    """Slot log entry + sent flag + sent-by in a single update."""
    store.update(row_id, {
        slot_column: entry,
        COL_SENT: True,
        COL_SENT_BY: BOT_NAME,
    })


def process_row_job(row_id: int, row_snapshot: dict) -> dict:
    job = get_current_job()
    extra = {'job_id': job.id if job else None, 'row_id': row_id}
    logger.info("Processing row %d in job %s", row_id, extra['job_id'], extra=extra)

    store = get_row_store()
    try:
        if ROW_LEASE_ENABLED:
            from campaign_bot.extensions import redis_client
            with RowLease(redis_client, row_id):
                row = store.get(row_id)
                if row is None:
                    raise RowNotFound(row_id)
                return _process_row(store, row, job, extra)
        return _process_row(store, ContactRow(row_id, row_snapshot), job, extra)
    except Exception as e:
        logger.error("Error processing row %d: %s", row_id, e, extra=extra)
        raise
    finally:
        store.close()


def _process_row(store, row: ContactRow, job, extra) -> dict:
    slot_column = next_slot(row)
    if slot_column is None:
        logger.warning("No empty email column for row %d, nothing to do", row.row_id, extra=extra)
        return {'row_id': row.row_id, 'status': 'no_action'}

    template_id = template_for(slot_column)
    logger.info("Using template %s for row %d", template_id, row.row_id, extra=extra)

    recipient = row.text(COL_EMAIL)
    if not validate_recipient(recipient):
        raise InvalidRecipient(recipient)

    _progress(job, 25)
    research = research_for_row(row)
    if research.degraded:
        logger.warning("Research degraded for row %d, using generic context", row.row_id, extra=extra)

    _progress(job, 50)
    email = render(template_id, row, research)

    _progress(job, 75)
    result = send_mail(recipient, email.subject, email.html)

    entry = format_log_entry(
        result.timestamp, result.message_id, template_id, result.status,
        subject=email.subject, html=email.html,
    )
    write_outcome(store, row.row_id, slot_column, entry)
    _progress(job, 100)

    logger.info("Processed row %d - %s", row.row_id, result.status, extra=extra)
    return {
        'row_id': row.row_id,
        'status': result.status,
        'message_id': result.message_id,
        'slot_column': slot_column,
        'template_id': template_id,
    }


def send_email_job(payload: dict) -> dict:
    job = get_current_job()
    row_id = payload['row_id']
    recipient = payload['recipient']
    extra = {'job_id': job.id if job else None, 'row_id': row_id}
    logger.info("Sending email for row %d to %s", row_id, recipient, extra=extra)

    if not validate_recipient(recipient):
        raise InvalidRecipient(recipient)

    store = get_row_store()
    try:
        result = send_mail(recipient, payload['subject'], payload['body_html'])
        entry = format_log_entry(
            result.timestamp, result.message_id, payload['template_id'], result.status,
            subject=payload['subject'],
        )
        write_outcome(store, row_id, payload['slot_column'], entry)
    except Exception as e:
        logger.error("Error sending email for row %d: %s", row_id, e, extra=extra)
        raise
    finally:
        store.close()

    logger.info("Sent email for row %d - %s", row_id, result.status, extra=extra)
    return {
        'row_id': row_id,
        'status': result.status,
        'message_id': result.message_id,
        'slot_column': payload['slot_column'],
        'template_id': payload['template_id'],
    }
