"""Tests for campaign_bot.pipeline.manager — enqueue pass over the row store."""
from unittest.mock import MagicMock, patch

import pytest

from campaign_bot.errors import StorageUnavailable
from campaign_bot.models.contact import ContactRow
from campaign_bot.pipeline.manager import run_all, run_one

MOD = 'campaign_bot.pipeline.manager'


def _rows(*flags):
    """One row per flag: '' (eligible), 'pause' or 'in_talks'."""
    rows = []
    for i, flag in enumerate(flags, start=1):
        values = {'name': f'Creator {i}', 'email_address': f'c{i}@x.io', 'pause': '', 'in_talks': ''}
        if flag:
            values[flag] = 'TRUE'
        rows.append(ContactRow(i, values))
    return rows


@pytest.fixture
def store():
    s = MagicMock()
    s.list.return_value = _rows('', 'pause', '', 'in_talks', '')
    s.get.side_effect = lambda row_id: next((r for r in s.list.return_value if r.row_id == row_id), None)
    with patch(f'{MOD}.get_row_store', return_value=s):
        yield s


@pytest.fixture
def enqueue():
    with patch(f'{MOD}.enqueue_row', side_effect=lambda row: f'row-{row.row_id}-1') as m:
        yield m


@pytest.fixture(autouse=True)
def no_sleep():
    with patch(f'{MOD}.time') as t:
        yield t


class TestRunAll:

    def test_enqueues_eligible_rows_in_order(self, store, enqueue):
        stats = run_all()
        assert [c[0][0].row_id for c in enqueue.call_args_list] == [1, 3, 5]
        assert stats.total_rows == 5
        assert stats.enqueued == 3
        assert stats.skipped == 2
        assert stats.errors == []
        assert stats.job_ids == ['row-1-1', 'row-3-1', 'row-5-1']
        assert stats.status == 'submitted'
        store.close.assert_called_once()

    def test_enqueued_plus_skipped_accounts_for_every_row(self, store, enqueue):
        stats = run_all()
        assert stats.enqueued + stats.skipped + len(stats.errors) == stats.total_rows

    def test_paces_only_after_enqueue(self, store, enqueue, no_sleep):
        run_all()
        assert no_sleep.sleep.call_count == 3
        no_sleep.sleep.assert_called_with(0.1)

    def test_limit_caps_rows_considered(self, store, enqueue):
        stats = run_all(limit=2)
        assert stats.total_rows == 5
        assert stats.enqueued == 1
        assert stats.skipped == 1

    def test_limit_zero(self, store, enqueue):
        stats = run_all(limit=0)
        assert stats.enqueued == 0
        enqueue.assert_not_called()

    def test_max_emails_per_run(self, store, enqueue):
        with patch(f'{MOD}.MAX_EMAILS_PER_RUN', 2):
            stats = run_all()
        assert stats.enqueued == 2
        assert stats.job_ids == ['row-1-1', 'row-3-1']

    def test_row_errors_are_collected(self, store, enqueue):
        def flaky(row):
            if row.row_id == 3:
                raise ConnectionError('redis down')
            return f'row-{row.row_id}-1'
        enqueue.side_effect = flaky
        stats = run_all()
        assert stats.enqueued == 2
        assert stats.errors == ['Row 3: redis down']

    def test_storage_failure_propagates_and_closes(self, store, enqueue):
        store.list.side_effect = StorageUnavailable('sheet unreachable')
        with pytest.raises(StorageUnavailable):
            run_all()
        store.close.assert_called_once()

    def test_empty_table(self, store, enqueue):
        store.list.return_value = []
        stats = run_all()
        assert stats.to_dict()['total_rows'] == 0
        assert stats.enqueued == 0


class TestRunOne:

    def test_eligible_row(self, store, enqueue):
        stats = run_one(3)
        assert stats.enqueued == 1
        assert stats.job_ids == ['row-3-1']
        store.close.assert_called_once()

    def test_ineligible_row(self, store, enqueue):
        stats = run_one(2)
        assert stats.skipped == 1
        enqueue.assert_not_called()

    def test_missing_row(self, store, enqueue):
        stats = run_one(99)
        assert stats.errors == ['Row 99 not found']
        assert stats.enqueued == 0
        store.close.assert_called_once()


class TestAgainstCsv:
    """Five rows, two flagged: three jobs, one per eligible row."""

    def test_five_rows_two_flagged(self, write_csv, enqueue):
        path = write_csv([
            ['A', 'n', 'N/A', '', 'a.com', 'a@x.io', '', '', '', '', '', '', ''],
            ['B', 'n', 'N/A', '', 'b.com', 'b@x.io', '', '', 'TRUE', '', '', '', ''],
            ['C', 'n', 'N/A', '', 'c.com', 'c@x.io', '', '', '', '', '', '', ''],
            ['D', 'n', 'N/A', '', 'd.com', 'd@x.io', '', '', '', 'true', '', '', ''],
            ['E', 'n', 'N/A', '', 'e.com', 'e@x.io', '', '', '', '', '', '', ''],
        ])
        with patch('campaign_bot.config.DATA_PROVIDER', 'csv'), patch('campaign_bot.config.CSV_PATH', path):
            stats = run_all()
        assert stats.enqueued == 3
        assert stats.skipped == 2
        assert [c[0][0]['name'] for c in enqueue.call_args_list] == ['A', 'C', 'E']
