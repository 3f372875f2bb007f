"""
Repository for top-up plans and transactions.
"""
from typing import Any, Dict, List, Optional

from app.db import collections
from app.db.base import DocumentStore
from app.models.base import utcnow
from app.models.topup import TopupPlan, TopupTransaction


class TopupRepository:
    """Repository for `topupTransactions` and `topupPlans`."""

    @staticmethod
    async def create_transaction(store: DocumentStore, transaction: TopupTransaction) -> TopupTransaction:
        now = utcnow()
        transaction = transaction.model_copy(update={"created_at": now, "updated_at": now})
        transaction_id = await store.create(collections.TOPUP_TRANSACTIONS, transaction.to_document())
        return transaction.model_copy(update={"id": transaction_id})

    @staticmethod
    async def get_transaction(store: DocumentStore, transaction_id: str) -> Optional[TopupTransaction]:
        data = await store.get(collections.TOPUP_TRANSACTIONS, transaction_id)
        return TopupTransaction.from_document(transaction_id, data) if data is not None else None

    @staticmethod
    async def find_by_order_id(store: DocumentStore, order_id: str) -> Optional[TopupTransaction]:
        docs = await store.query(
            collections.TOPUP_TRANSACTIONS,
            filters=[("orderId", order_id)],
            limit=1
        )
        if not docs:
            return None
        doc_id, data = docs[0]
        return TopupTransaction.from_document(doc_id, data)

    @staticmethod
    async def update_transaction(store: DocumentStore, transaction_id: str, fields: Dict[str, Any]) -> None:
        await store.update(
            collections.TOPUP_TRANSACTIONS,
            transaction_id,
            {**fields, "updatedAt": utcnow()}
        )

    @staticmethod
    async def list_transactions(
        store: DocumentStore,
        user_id: Optional[str] = None,
        status: Optional[str] = None
    ) -> List[TopupTransaction]:
        """Transactions newest first, optionally filtered by user and status."""
        filters = []
        if user_id:
            filters.append(("userId", user_id))
        if status:
            filters.append(("status", status))
        docs = await store.query(collections.TOPUP_TRANSACTIONS, filters=filters)
        transactions = [TopupTransaction.from_document(doc_id, data) for doc_id, data in docs]
        return sorted(
            transactions,
            key=lambda t: t.created_at.timestamp() if t.created_at else 0,
            reverse=True
        )

    # ----- plans -----

    @staticmethod
    async def list_plans(store: DocumentStore) -> List[TopupPlan]:
        docs = await store.query(collections.TOPUP_PLANS, order_by="order")
        return [TopupPlan.from_document(doc_id, data) for doc_id, data in docs]

    @staticmethod
    async def get_plan(store: DocumentStore, plan_id: str) -> Optional[TopupPlan]:
        data = await store.get(collections.TOPUP_PLANS, plan_id)
        return TopupPlan.from_document(plan_id, data) if data is not None else None

    @staticmethod
    async def save_plan(store: DocumentStore, plan: TopupPlan) -> TopupPlan:
        """Create a plan, or overwrite it when plan.id is set."""
        now = utcnow()
        plan = plan.model_copy(update={"updated_at": now, "created_at": plan.created_at or now})
        if plan.id:
            await store.set(collections.TOPUP_PLANS, plan.id, plan.to_document())
            return plan
        plan_id = await store.create(collections.TOPUP_PLANS, plan.to_document())
        return plan.model_copy(update={"id": plan_id})

    @staticmethod
    async def delete_plan(store: DocumentStore, plan_id: str) -> None:
        await store.delete(collections.TOPUP_PLANS, plan_id)
