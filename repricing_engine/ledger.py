"""
Ledger des brouillons de prix.

Le ledger est le seul propriétaire de l'identité et du cycle de vie des
brouillons :
- création (avec anti-doublon : un seul brouillon par produit/canal et par jour UTC),
- approbation (pending -> approved, puis écriture du prix actif),
- rejet (pending -> rejected, aucune écriture de prix).

Un brouillon approuvé ou rejeté n'est plus jamais modifié.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import DraftNotFound, InvalidDraftState
from .interfaces.ports import PricingRepositoryPort
from .locks import ProductLockRegistry
from .models.pricing import DraftStatus, PriceDraft, normalize_channel

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DraftLedger:
    """Création et approbation des brouillons de prix."""

    def __init__(
        self,
        pricing_repo: PricingRepositoryPort,
        locks: Optional[ProductLockRegistry] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.pricing_repo = pricing_repo
        self.locks = locks if locks is not None else ProductLockRegistry()
        self.clock = clock

    def create_draft(
        self,
        product_id: str,
        channel: str,
        old_net: Optional[float] = None,
        old_gross: Optional[float] = None,
        old_margin_pct: Optional[float] = None,
        new_net: Optional[float] = None,
        new_gross: Optional[float] = None,
        new_margin_pct: Optional[float] = None,
        change_pct: Optional[float] = None,
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> Tuple[PriceDraft, bool]:
        """
        Enregistre un brouillon.

        Retourne `(draft, created)`. Si un brouillon existe déjà aujourd'hui
        pour ce produit et ce canal, il est retourné avec `created=False`.
        """
        if not product_id:
            raise ValueError("product_id is required when creating a pricing draft.")

        channel = normalize_channel(channel)
        if not channel:
            raise ValueError("Channel is required when creating a pricing draft.")

        today = self.clock().astimezone(timezone.utc).date()
        existing = self.pricing_repo.find_draft_for_day(product_id, channel, today)
        if existing is not None:
            logger.warning(
                f"[Ledger] Draft already exists today for product {product_id} ({channel}), "
                f"skipping duplicate (draft {existing.id})"
            )
            return existing, False

        draft = self.pricing_repo.create_price_draft(
            product_id=product_id,
            channel=channel,
            old_net=old_net,
            old_gross=old_gross,
            old_margin_pct=old_margin_pct,
            new_net=new_net,
            new_gross=new_gross,
            new_margin_pct=new_margin_pct,
            change_pct=change_pct,
            notes=notes,
            created_by=created_by,
        )
        logger.info(f"[Ledger] Draft created: product={product_id} channel={channel} draft={draft.id}")

        self._record_history(
            draft.product_id,
            draft.channel,
            old_net=old_net,
            new_net=new_net,
            margin_before=old_margin_pct,
            margin_after=new_margin_pct,
            meta={"draft_id": draft.id, "created_by": created_by, "notes": notes},
        )
        return draft, True

    def create(self, **fields: Any) -> str:
        """Comme `create_draft`, mais ne retourne que l'ID du brouillon."""
        draft, _ = self.create_draft(**fields)
        return draft.id

    def get(self, draft_id: str) -> PriceDraft:
        draft = self.pricing_repo.get_price_draft(draft_id)
        if draft is None:
            raise DraftNotFound(draft_id)
        return draft

    def list_pending(self, product_id: Optional[str] = None) -> List[PriceDraft]:
        return self.pricing_repo.list_price_drafts(product_id=product_id, status=DraftStatus.PENDING)

    def approve(self, draft_id: str, approver_id: str) -> Dict[str, Any]:
        """
        Approuve un brouillon `pending` et écrit son prix dans la fiche active.

        Seul chemin d'application d'un prix en mode "safe". Lève
        `DraftNotFound` ou `InvalidDraftState`.
        """
        draft = self.get(draft_id)
        if not draft.is_pending:
            raise InvalidDraftState(draft_id, draft.status.value, action="approve")

        with self.locks.hold(draft.product_id):
            approved = self.pricing_repo.approve_price_draft(draft_id, approver_id)
            if approved is None:
                # Un autre appel a changé le statut entre la lecture et l'écriture
                current = self.get(draft_id)
                raise InvalidDraftState(draft_id, current.status.value, action="approve")

            applied = False
            if approved.new_net is not None:
                try:
                    self.pricing_repo.update_live_price(
                        approved.product_id, approved.channel, approved.new_net, approved.new_gross
                    )
                    applied = True
                except Exception as e:
                    logger.error(
                        f"[Ledger] Draft {draft_id} approved but live price write failed: {e}",
                        exc_info=True,
                    )
                    raise

        logger.info(f"[Ledger] Draft approved: draft={draft_id} by={approver_id} applied={applied}")
        self._record_history(
            approved.product_id,
            approved.channel,
            old_net=approved.old_net,
            new_net=approved.new_net,
            margin_before=approved.old_margin_pct,
            margin_after=approved.new_margin_pct,
            meta={"draft_id": draft_id, "approved_by": approver_id},
        )
        return {"product_id": approved.product_id, "applied": applied}

    def reject(self, draft_id: str, approver_id: str) -> PriceDraft:
        draft = self.get(draft_id)
        if not draft.is_pending:
            raise InvalidDraftState(draft_id, draft.status.value, action="reject")

        rejected = self.pricing_repo.reject_price_draft(draft_id, approver_id)
        if rejected is None:
            current = self.get(draft_id)
            raise InvalidDraftState(draft_id, current.status.value, action="reject")

        logger.info(f"[Ledger] Draft rejected: draft={draft_id} by={approver_id}")
        return rejected

    def _record_history(self, product_id: str, channel: str, **fields: Any) -> None:
        try:
            self.pricing_repo.record_pricing_history(product_id, channel, **fields)
        except Exception as e:
            logger.error(f"[Ledger] Could not record pricing history for {product_id}: {e}")
