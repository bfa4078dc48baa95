"""
Bulk user import.

Rows are provisioned strictly one after another: outcome i always belongs to
request i, and a failing row never stops the batch.
"""

import logging
from typing import List, Optional

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.core.config import Settings, get_settings
from app.core.exceptions import EmailDeliveryError
from app.schemas.provisioning import AccountRequest, BatchSummary, BulkCreateUsersResponse, RowOutcome
from app.services.provisioning_service import AccountProvisioner

logger = logging.getLogger(__name__)


class BulkImportService:
    """Runs a batch of account requests through provisioning and email."""

    def __init__(
        self,
        provisioner: AccountProvisioner,
        email_service,
        settings: Optional[Settings] = None,
    ):
        self.provisioner = provisioner
        self.email_service = email_service
        self.settings = settings or get_settings()

    async def _provision_row(self, request: AccountRequest, operator_id: str) -> RowOutcome:
        """Provision one row; whatever goes wrong stays inside this row's outcome."""
        try:
            return await self.provisioner.provision(
                request, operator_id, timeout=self.settings.bulk_import_row_timeout_seconds
            )
        except Exception as e:
            logger.exception(f"Unexpected error provisioning {request.email}")
            await self.provisioner.db.rollback()
            return RowOutcome(
                email=request.email,
                success=False,
                full_name=request.full_name,
                error=f"Unexpected error: {e.__class__.__name__}",
            )

    async def _dispatch(self, outcome: RowOutcome) -> bool:
        """Email the credentials, retrying transient provider failures."""
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(max(1, self.settings.email_max_attempts)),
                wait=wait_exponential(multiplier=self.settings.email_retry_wait_seconds, max=30),
                retry=retry_if_exception_type(EmailDeliveryError),
                reraise=True,
            ):
                with attempt:
                    await self.email_service.deliver_credentials(
                        outcome.email, outcome.password, outcome.full_name
                    )
            return True
        except EmailDeliveryError as e:
            logger.error(f"Credentials email to {outcome.email} failed: {e}")
            return False
        except Exception:
            logger.exception(f"Unexpected error emailing {outcome.email}")
            return False

    async def run(self, requests: List[AccountRequest], operator_id: str) -> BulkCreateUsersResponse:
        """
        Provision every request in order and email each created account.

        An email failure only affects emailsSent; the account stays created.
        """
        results: List[RowOutcome] = []
        success_count = 0
        emails_sent = 0

        logger.info(f"Bulk import of {len(requests)} rows started by {operator_id}")

        for request in requests:
            outcome = await self._provision_row(request, operator_id)

            if outcome.success:
                success_count += 1
                outcome.email_sent = await self._dispatch(outcome)
                if outcome.email_sent:
                    emails_sent += 1

            results.append(outcome)

        summary = BatchSummary(
            total=len(requests),
            success=success_count,
            failed=len(requests) - success_count,
            emails_sent=emails_sent,
        )
        logger.info(
            f"Bulk import finished: {summary.success}/{summary.total} created, "
            f"{summary.emails_sent} emails sent"
        )
        return BulkCreateUsersResponse(results=results, summary=summary)
