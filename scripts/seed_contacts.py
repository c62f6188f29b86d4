#!/usr/bin/env python3
"""
Seed a contacts CSV for trying the campaign locally.

Creates rows covering the key scenarios:
  1. Fresh contact with a YouTube channel (gets email_1)
  2. Fresh contact without a channel ('N/A', site research)
  3. Contact due for a follow-up (slot 1 used, gets email_2)
  4. Paused contact (skipped)
  5. Contact in talks (skipped)
  6. Sequence finished (no empty slot, job is a no-op)

Usage:
    python scripts/seed_contacts.py              # write to CSV_PATH
    python scripts/seed_contacts.py --path x.csv # write somewhere else
    python scripts/seed_contacts.py --force      # overwrite an existing file
"""
import argparse
import csv
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from campaign_bot.config import (
    BOT_NAME, COL_CHANNEL_LINK, COL_EMAIL, COL_FOLLOWERS, COL_IN_TALKS, COL_NAME, COL_NICHE,
    COL_NOTES, COL_PAUSE, COL_SENT, COL_SENT_BY, COL_WEBSITE, CSV_PATH, SLOT_PREFIX,
)
from campaign_bot.models.log_entry import STATUS_SENT, format_log_entry
from campaign_bot.stores.csv_store import CsvRowStore

SLOTS = [f'{SLOT_PREFIX}{n}' for n in (1, 2, 3)]

HEADERS = [
    COL_NAME, COL_NICHE, COL_CHANNEL_LINK, COL_FOLLOWERS, COL_WEBSITE, COL_EMAIL,
    COL_SENT, COL_SENT_BY, COL_PAUSE, COL_IN_TALKS, COL_NOTES,
] + SLOTS


def _sent(n, day):
    return format_log_entry(f'2025-01-{day:02d}T10:00:00.000Z', f'msg_seed_{n}', f'email_{n}', STATUS_SENT,
                            subject='Seeded send')


# ── Fake creators ────────────────────────────────────────────────────────────

CONTACTS = [
    {COL_NAME: 'Jane Morrison', COL_NICHE: 'Travel', COL_CHANNEL_LINK: 'https://youtube.com/@wanderlustjane',
     COL_FOLLOWERS: '82000', COL_EMAIL: 'jane@example.com', COL_NOTES: 'fresh, channel research'},
    {COL_NAME: 'Alex Rivera', COL_NICHE: 'Fitness', COL_CHANNEL_LINK: 'N/A', COL_WEBSITE: 'alexfit.com',
     COL_EMAIL: 'alex@example.com', COL_NOTES: 'fresh, site research'},
    {COL_NAME: 'Priya Sharma', COL_NICHE: 'Cooking', COL_CHANNEL_LINK: 'https://youtube.com/@priyacooks',
     COL_FOLLOWERS: '67000', COL_EMAIL: 'priya@example.com', COL_SENT: 'TRUE', COL_SENT_BY: BOT_NAME,
     SLOTS[0]: _sent(1, 3), COL_NOTES: 'follow-up due'},
    {COL_NAME: 'Carlos Reyes', COL_NICHE: 'Gaming', COL_CHANNEL_LINK: 'https://youtube.com/@carlosplays',
     COL_EMAIL: 'carlos@example.com', COL_PAUSE: 'TRUE', COL_NOTES: 'paused'},
    {COL_NAME: 'Emma Chen', COL_NICHE: 'Wellness', COL_CHANNEL_LINK: 'N/A', COL_WEBSITE: 'roamandrest.com',
     COL_EMAIL: 'emma@example.com', COL_IN_TALKS: 'true', COL_NOTES: 'in talks'},
    {COL_NAME: 'Derek Williams', COL_NICHE: 'Tech', COL_CHANNEL_LINK: 'https://youtube.com/@derektech',
     COL_EMAIL: 'derek@example.com', COL_SENT: 'TRUE', COL_SENT_BY: BOT_NAME,
     SLOTS[0]: _sent(1, 1), SLOTS[1]: _sent(2, 8), SLOTS[2]: _sent(3, 15), COL_NOTES: 'sequence finished'},
]


def main():
    parser = argparse.ArgumentParser(description='Seed a contacts CSV for local runs')
    parser.add_argument('--path', default=CSV_PATH, help=f'CSV file to write (default: {CSV_PATH})')
    parser.add_argument('--force', action='store_true', help='Overwrite the file if it exists')
    args = parser.parse_args()

    if os.path.exists(args.path) and not args.force:
        print(f'{args.path} already exists, use --force to overwrite.')
        return 1

    os.makedirs(os.path.dirname(os.path.abspath(args.path)), exist_ok=True)
    with open(args.path, 'w', newline='', encoding='utf-8') as fh:
        writer = csv.DictWriter(fh, fieldnames=HEADERS, restval='')
        writer.writeheader()
        writer.writerows(CONTACTS)

    with CsvRowStore(args.path) as store:
        rows = store.list()
    print(f'Seeded {len(rows)} contacts into {args.path}:')
    for row in rows:
        print(f'  [{row.row_id}] {row[COL_NAME]:<16} {row[COL_NOTES]}')
    return 0


if __name__ == '__main__':
    sys.exit(main())
