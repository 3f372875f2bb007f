"""
Top-up service: diamond packages, checkout and settlement.

Settlement credits diamonds + bonus and marks the transaction settled in a
single store transaction, so a transaction is either pending-and-uncredited
or settled-and-credited. Redelivered notifications find it settled and do
nothing. Store calls are wrapped in with_backoff for quota errors.
"""
import logging
import secrets
import string
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from app.db import collections
from app.db.base import DocumentStore, Transaction
from app.db.retry import with_backoff
from app.exceptions import InvalidSignature, NotOwner, PlanNotFound, TransactionNotFound
from app.models.base import utcnow
from app.models.tokens import UserTokenData
from app.models.topup import TopupPlan, TopupStatus, TopupTransaction
from app.repositories.topup_repository import TopupRepository
from app.services.midtrans_service import MidtransClient, verify_signature
from app.utils.logging import log_topup_settled
from app.utils.metrics import topup_notifications_total, topups_created_total, topups_settled_total

logger = logging.getLogger(__name__)

DEFAULT_PLANS = [
    TopupPlan(id="1", diamonds=100, price=10000, anchor_price=15000, bonus=0, order=1),
    TopupPlan(id="2", diamonds=250, price=22500, anchor_price=37500, bonus=25, popular=True, order=2),
    TopupPlan(id="3", diamonds=500, price=40000, anchor_price=75000, bonus=100, order=3),
]

_GATEWAY_STATUSES = {
    "settlement": TopupStatus.SETTLEMENT,
    "pending": TopupStatus.PENDING,
    "expire": TopupStatus.EXPIRE,
    "cancel": TopupStatus.CANCEL,
    "deny": TopupStatus.DENY,
    "failure": TopupStatus.DENY,
    "refund": TopupStatus.REFUND,
    "partial_refund": TopupStatus.REFUND,
}


def generate_order_id() -> str:
    """Order id in the form TOPUP-{epoch ms}-{7 uppercase alphanumerics}."""
    alphabet = string.ascii_uppercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(7))
    return f"TOPUP-{int(time.time() * 1000)}-{suffix}"


def map_gateway_status(transaction_status: Optional[str], fraud_status: Optional[str] = None) -> Optional[TopupStatus]:
    """
    Map a Midtrans transaction_status to our status.

    Card `capture` counts as settled only when fraud screening accepted it.

    Returns:
        TopupStatus, or None for statuses we do not track (e.g. authorize)
    """
    if transaction_status == "capture":
        if fraud_status in (None, "", "accept"):
            return TopupStatus.SETTLEMENT
        return TopupStatus.PENDING
    return _GATEWAY_STATUSES.get(transaction_status or "")


@dataclass
class SettlementResult:
    transaction: TopupTransaction
    credited: bool  # False when it had already been settled
    balance: Optional[int] = None  # balance after crediting


@dataclass
class NotificationOutcome:
    order_id: str
    found: bool
    status: Optional[str] = None
    credited: bool = False


class TopupService:
    """Top-up plans, checkout creation and idempotent settlement."""

    @staticmethod
    async def get_plans(store: DocumentStore) -> List[TopupPlan]:
        """Plans ordered by `order`; built-in defaults when none are configured."""
        plans = await TopupRepository.list_plans(store)
        return plans or list(DEFAULT_PLANS)

    @staticmethod
    async def get_plan(store: DocumentStore, plan_id: str) -> TopupPlan:
        for plan in await TopupService.get_plans(store):
            if plan.id == plan_id:
                return plan
        raise PlanNotFound(plan_id)

    @staticmethod
    async def create_topup(
        store: DocumentStore,
        gateway: MidtransClient,
        user_id: str,
        user_email: Optional[str],
        plan_id: str
    ) -> Tuple[TopupTransaction, Dict[str, Any]]:
        """
        Start a purchase: save a pending transaction, then open a Snap checkout.

        The transaction is stored before calling the gateway so the payment
        notification always finds it.

        Returns:
            Tuple of (pending transaction, Snap response with token/redirect_url)

        Raises:
            PlanNotFound: Unknown plan id
            PaymentGatewayError: Gateway call failed
        """
        plan = await TopupService.get_plan(store, plan_id)
        pending = TopupTransaction(
            user_id=user_id,
            user_email=user_email,
            package_id=plan.id,
            diamonds=plan.diamonds,
            bonus=plan.bonus,
            price=plan.price,
            status=TopupStatus.PENDING,
            order_id=generate_order_id(),
        )
        transaction = await with_backoff(lambda: TopupRepository.create_transaction(store, pending))
        topups_created_total.inc()
        logger.info(
            f"Top-up {transaction.order_id} created for user {user_id}: "
            f"plan={plan.id}, diamonds={plan.diamonds}+{plan.bonus}, price={plan.price}"
        )

        item_name = f"{plan.diamonds} Diamonds" + (f" + {plan.bonus} Bonus" if plan.bonus else "")
        snap = await gateway.create_snap_transaction(
            order_id=transaction.order_id,
            gross_amount=plan.price,
            item_id=plan.id,
            item_name=item_name,
            customer_email=user_email or f"{user_id}@example.com",
        )
        return transaction, snap

    @staticmethod
    async def settle(
        store: DocumentStore,
        transaction_id: Optional[str] = None,
        order_id: Optional[str] = None,
        payment_method: Optional[str] = None,
        gateway_transaction_id: Optional[str] = None
    ) -> SettlementResult:
        """
        Credit a transaction exactly once.

        Args:
            store: Document store
            transaction_id: Transaction document id (looked up by order_id if omitted)
            order_id: Gateway order id
            payment_method: Optional payment type reported by the gateway
            gateway_transaction_id: Optional gateway transaction id

        Returns:
            SettlementResult; credited is False if it was already settled

        Raises:
            TransactionNotFound: No such transaction
            ResourceExhausted: Store quota still exhausted after retries
        """
        if transaction_id is None:
            if not order_id:
                raise TransactionNotFound()
            found = await with_backoff(lambda: TopupRepository.find_by_order_id(store, order_id))
            if found is None:
                raise TransactionNotFound(order_id=order_id)
            transaction_id = found.id

        async def _settle(txn: Transaction) -> SettlementResult:
            data = await txn.get(collections.TOPUP_TRANSACTIONS, transaction_id)
            if data is None:
                raise TransactionNotFound(transaction_id=transaction_id, order_id=order_id)
            transaction = TopupTransaction.from_document(transaction_id, data)
            if order_id and transaction.order_id != order_id:
                raise TransactionNotFound(transaction_id=transaction_id, order_id=order_id)

            if transaction.is_settled:
                return SettlementResult(transaction=transaction, credited=False)

            # status=settlement without completedAt is an unfinished legacy write: credit it
            account_data = await txn.get(collections.USER_TOKENS, transaction.user_id)
            current = UserTokenData.from_document(transaction.user_id, account_data).tokens if account_data else 0
            balance = current + transaction.total_diamonds
            now = utcnow()

            account_update = {"userId": transaction.user_id, "tokens": balance, "updatedAt": now}
            if account_data is None:
                account_update["createdAt"] = now
            txn.set(collections.USER_TOKENS, transaction.user_id, account_update, merge=True)

            transaction_update = {
                "status": TopupStatus.SETTLEMENT.value,
                "completedAt": now,
                "updatedAt": now,
            }
            if payment_method:
                transaction_update["paymentMethod"] = payment_method
            if gateway_transaction_id:
                transaction_update["midtransTransactionId"] = gateway_transaction_id
            txn.update(collections.TOPUP_TRANSACTIONS, transaction_id, transaction_update)

            settled = transaction.model_copy(update={
                "status": TopupStatus.SETTLEMENT.value,
                "completed_at": now,
                "updated_at": now,
            })
            return SettlementResult(transaction=settled, credited=True, balance=balance)

        result = await with_backoff(lambda: store.run_transaction(_settle))

        if result.credited:
            topups_settled_total.inc()
            log_topup_settled(
                logger,
                order_id=result.transaction.order_id,
                user_id=result.transaction.user_id,
                diamonds=result.transaction.total_diamonds,
                balance=result.balance
            )
        else:
            logger.info(f"Top-up {result.transaction.order_id} already settled, skipping")
        return result

    @staticmethod
    async def handle_notification(
        store: DocumentStore,
        gateway: MidtransClient,
        notification: Dict[str, Any]
    ) -> NotificationOutcome:
        """
        Process a payment notification.

        A notification carrying signature_key must match our server key. One
        without a signature is not trusted: the status is re-read from the
        gateway instead. Settled transactions are never downgraded.

        Raises:
            ValueError: Missing order_id
            InvalidSignature: Signature mismatch
            PaymentGatewayError: Status lookup failed
        """
        order_id = notification.get("order_id")
        if not order_id:
            raise ValueError("Invalid notification: missing order_id")

        signature = notification.get("signature_key")
        if signature:
            valid = verify_signature(
                order_id,
                str(notification.get("status_code", "")),
                str(notification.get("gross_amount", "")),
                gateway.config.server_key,
                signature
            )
            if not valid:
                logger.error(f"Invalid notification signature for order {order_id}")
                raise InvalidSignature(f"Invalid signature for order {order_id}")
            details = notification
        else:
            logger.warning(f"Unsigned notification for {order_id}, checking status with gateway")
            details = await gateway.get_status(order_id)

        transaction_status = details.get("transaction_status")
        topup_notifications_total.labels(status=transaction_status or "unknown").inc()
        new_status = map_gateway_status(transaction_status, details.get("fraud_status"))

        transaction = await with_backoff(lambda: TopupRepository.find_by_order_id(store, order_id))
        if transaction is None:
            logger.error(f"Notification for unknown order {order_id}")
            return NotificationOutcome(order_id=order_id, found=False)

        return await TopupService._apply_status(
            store,
            transaction,
            new_status,
            payment_method=details.get("payment_type"),
            gateway_transaction_id=details.get("transaction_id")
        )

    @staticmethod
    async def confirm_with_gateway(
        store: DocumentStore,
        gateway: MidtransClient,
        order_id: str,
        user_id: Optional[str] = None
    ) -> NotificationOutcome:
        """
        Re-check an order with the gateway and settle it if paid.

        Used by the buyer after checkout (user_id set, ownership enforced)
        and by admins retrying settlements that hit store quota.

        Raises:
            TransactionNotFound: Unknown order
            NotOwner: Order belongs to another user
            PaymentGatewayError: Status lookup failed
        """
        transaction = await with_backoff(lambda: TopupRepository.find_by_order_id(store, order_id))
        if transaction is None:
            raise TransactionNotFound(order_id=order_id)
        if user_id is not None and transaction.user_id != user_id:
            raise NotOwner(f"Order {order_id} does not belong to user {user_id}")
        if transaction.is_settled:
            return NotificationOutcome(order_id=order_id, found=True, status=transaction.status)

        details = await gateway.get_status(order_id)
        new_status = map_gateway_status(details.get("transaction_status"), details.get("fraud_status"))
        return await TopupService._apply_status(
            store,
            transaction,
            new_status,
            payment_method=details.get("payment_type"),
            gateway_transaction_id=details.get("transaction_id")
        )

    @staticmethod
    async def _apply_status(
        store: DocumentStore,
        transaction: TopupTransaction,
        new_status: Optional[TopupStatus],
        payment_method: Optional[str] = None,
        gateway_transaction_id: Optional[str] = None
    ) -> NotificationOutcome:
        outcome = NotificationOutcome(order_id=transaction.order_id, found=True, status=transaction.status)

        if new_status == TopupStatus.SETTLEMENT:
            result = await TopupService.settle(
                store,
                transaction_id=transaction.id,
                order_id=transaction.order_id,
                payment_method=payment_method,
                gateway_transaction_id=gateway_transaction_id
            )
            outcome.status = TopupStatus.SETTLEMENT.value
            outcome.credited = result.credited
            return outcome

        if new_status is None or transaction.status == TopupStatus.SETTLEMENT.value:
            if new_status is not None:
                logger.warning(
                    f"Ignoring {new_status.value} for settled top-up {transaction.order_id}"
                )
            return outcome

        fields: Dict[str, Any] = {"status": new_status.value}
        if payment_method:
            fields["paymentMethod"] = payment_method
        if gateway_transaction_id:
            fields["midtransTransactionId"] = gateway_transaction_id
        await with_backoff(lambda: TopupRepository.update_transaction(store, transaction.id, fields))
        logger.info(f"Top-up {transaction.order_id} status {transaction.status} -> {new_status.value}")
        outcome.status = new_status.value
        return outcome
