from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from paygate.db.models import Invoice
from paygate.db.session import session_scope
from paygate.errors import InvoiceNotFound, InvoiceNotPending
from paygate.services.audit import log_audit
from paygate.services.notifications import aclose_bot, notify_proof_submitted


logger = logging.getLogger(__name__)

PROOF_NOTE = "Payment proof uploaded, awaiting review"


class InvoiceProofRecorder:
    """Hands a confirmed proof URL to the invoice record.

    ``bind(invoice_id)`` returns the ``on_proof_ready`` callable a
    :class:`~paygate.payment.manual_transfer.ProofSubmissionPipeline` awaits.
    The call returns once the invoice row is committed, which is the
    acknowledgement the pipeline waits for.
    """

    def __init__(
        self,
        actor: str,
        *,
        session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
        notify: bool = True,
    ) -> None:
        self.actor = actor
        self._session_maker = session_maker
        self._notify = notify

    def bind(self, invoice_id: str) -> Callable[[str], Awaitable[None]]:
        async def _on_proof_ready(retrieval_url: str) -> None:
            await self.record(invoice_id, retrieval_url)

        return _on_proof_ready

    async def record(self, invoice_id: str, retrieval_url: str) -> None:
        async with session_scope(self._session_maker) as session:
            invoice = await session.get(Invoice, invoice_id)
            if invoice is None:
                raise InvoiceNotFound(f"Invoice {invoice_id} not found")
            if invoice.status != "pending":
                raise InvoiceNotPending(f"Invoice {invoice.invoice_number} is {invoice.status}, not pending")
            replaced = invoice.payment_proof_url is not None
            invoice_number = invoice.invoice_number
            invoice.payment_proof_url = retrieval_url
            invoice.notes = PROOF_NOTE
            await log_audit(
                session,
                actor=self.actor,
                action="payment_proof_submitted",
                target_type="invoice",
                target_id=invoice.id,
                meta={"invoice_number": invoice.invoice_number, "replaced": replaced},
            )
            await session.commit()

        logger.info(
            "invoice.proof_recorded",
            extra={"extra": {"invoice_id": invoice_id, "actor": self.actor, "replaced": replaced}},
        )
        if self._notify:
            await notify_proof_submitted(invoice_id, invoice_number, self.actor)

    async def aclose(self) -> None:
        """Close the notification bot session, if one was opened."""
        if self._notify:
            await aclose_bot()
