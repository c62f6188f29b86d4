"""
Error taxonomy shared by the row stores, collaborators and job runner.

Retryable errors propagate out of a job and let the queue's retry policy run.
Terminal errors are raised the same way, but the worker zeroes the job's
remaining retries so they fail on the first attempt.
"""


class CampaignError(Exception):
    """Base class for every error raised by the campaign bot."""


class RowNotFound(CampaignError):
    """Row identifier is stale or invalid."""
    def __init__(self, row_id):
        self.row_id = row_id
        super().__init__(f"Row {row_id} not found")


class StorageUnavailable(CampaignError):
    """Row store backend (file system, Sheets API) could not be reached."""


class InvalidRecipient(CampaignError):
    """Recipient address is malformed; retrying will not fix it."""
    def __init__(self, address):
        self.address = address
        super().__init__(f"Invalid email address: {address!r}")


class ContentGenerationFailed(CampaignError):
    """Language model call failed while rendering a template."""


class TemplateNotFound(ContentGenerationFailed):
    def __init__(self, template_id):
        self.template_id = template_id
        super().__init__(f"Template {template_id} not found")


class ConfigurationError(CampaignError):
    """A required setting (API key, credentials path) is missing."""


class RowBusy(CampaignError):
    """Another job currently holds the lease for this row."""
    def __init__(self, row_id):
        self.row_id = row_id
        super().__init__(f"Row {row_id} is leased by another job")


# Errors the worker must not retry
TERMINAL_ERRORS = (InvalidRecipient, RowNotFound, ConfigurationError)
