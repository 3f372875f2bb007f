"""
Domain exceptions.

Services raise these; the API layer translates them into HTTP responses.
"""
from typing import Optional


class EditAjaError(Exception):
    """Base class for all domain errors."""


class InsufficientBalance(EditAjaError):
    """Authenticated user does not hold enough tokens for a generation."""

    def __init__(self, balance: int, cost: int):
        self.balance = balance
        self.cost = cost
        super().__init__(f"Insufficient tokens: balance={balance}, cost={cost}")


class QuotaExceeded(EditAjaError):
    """Anonymous identity used up its free generations for today."""

    def __init__(self, anonymous_id: str, used: int, limit: int):
        self.anonymous_id = anonymous_id
        self.used = used
        self.limit = limit
        super().__init__(f"Anonymous quota exceeded: {used}/{limit}")


class StyleNotFound(EditAjaError):
    def __init__(self, style_id: str):
        self.style_id = style_id
        super().__init__(f"Style {style_id} not found")


class GenerationFailed(EditAjaError):
    """AI provider rejected the request or returned no images."""


class GenerationTimeout(GenerationFailed):
    """AI task did not complete before the polling deadline."""


class ImageSaveFailed(EditAjaError):
    """None of the generated images could be re-hosted."""


class ProviderNotConfigured(EditAjaError):
    """No API key available for the AI provider."""


class TransactionNotFound(EditAjaError):
    def __init__(self, transaction_id: Optional[str] = None, order_id: Optional[str] = None):
        self.transaction_id = transaction_id
        self.order_id = order_id
        super().__init__(
            f"Topup transaction not found (id={transaction_id}, order={order_id})"
        )


class InvalidSignature(EditAjaError):
    """Payment notification signature does not match."""


class PaymentGatewayError(EditAjaError):
    """Payment gateway call failed or is not configured."""


class GenerationNotFound(EditAjaError):
    def __init__(self, generation_id: str):
        self.generation_id = generation_id
        super().__init__(f"Generation {generation_id} not found")


class NotOwner(EditAjaError):
    """Caller does not own the requested resource."""


class PlanNotFound(EditAjaError):
    def __init__(self, plan_id: str):
        self.plan_id = plan_id
        super().__init__(f"Topup plan {plan_id} not found")


class FeedbackNotFound(EditAjaError):
    def __init__(self, feedback_id: str):
        self.feedback_id = feedback_id
        super().__init__(f"Feedback {feedback_id} not found")


class BetaRegistrationClosed(EditAjaError):
    """Beta tester registration is disabled in settings."""


class AlreadyBetaTester(EditAjaError):
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__("You are already registered as a beta tester")
