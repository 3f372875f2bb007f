"""
Admin endpoints: catalog, generations, users, settings, top-ups, feedback,
beta testers, visitors and analytics.
Every route requires a Firebase user listed in the `admins` collection.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from google.api_core.exceptions import ResourceExhausted

from app.ai.factory import get_image_provider
from app.api.deps import get_image_host, get_payment_gateway
from app.auth.dependencies import CurrentUser, require_admin
from app.config import settings
from app.database import get_store
from app.db.base import DocumentStore
from app.models.beta_tester import BetaTester
from app.models.feedback import Feedback, FeedbackCategory
from app.models.generation import Generation
from app.models.settings import BetaTesterSettings, GeneralSettings, MidtransConfig, TokenSettings
from app.models.style import Style
from app.models.topup import TopupPlan, TopupTransaction
from app.repositories.topup_repository import TopupRepository
from app.schemas.admin import (
    ApiKeyRequest,
    ApiKeyStatusResponse,
    ApiKeyTestRequest,
    ConnectionTestResponse,
    DeleteGenerationResponse,
    PurgeResponse,
    TokenAddRequest,
    TokenSetRequest,
    UserTokensResponse,
)
from app.schemas.engagement import FeedbackUpdateRequest, UnreadCountResponse, VisitorStatsResponse
from app.schemas.style import (
    BulkStatusRequest,
    BulkStatusResponse,
    DeleteAllResponse,
    ImportResponse,
    StyleCreate,
    StyleUpdate,
)
from app.schemas.topup import CompleteTopupRequest, TopupStatusResponse
from app.services.analytics_service import PERIOD_DAYS, AnalyticsService
from app.services.beta_tester_service import BetaTesterService
from app.services.feedback_service import FeedbackService
from app.services.history_service import GenerationHistoryService
from app.services.midtrans_service import MidtransClient
from app.services.settings_service import SettingsService
from app.services.style_service import StyleService
from app.services.token_service import TokenService
from app.services.topup_service import TopupService
from app.services.visitor_service import VisitorService
from app.storage.image_host import ImageHost

router = APIRouter(dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 3600


# ============= Styles =============

@router.get("/styles", response_model=List[Style])
async def admin_list_styles(
    q: Optional[str] = Query(None),
    store: DocumentStore = Depends(get_store)
):
    """All styles (active and inactive), newest first."""
    if q:
        return await StyleService.search_by_name(store, q)
    return await StyleService.list_styles(store)


@router.post("/styles", response_model=Style, status_code=status.HTTP_201_CREATED)
async def admin_create_style(request: StyleCreate, store: DocumentStore = Depends(get_store)):
    style = Style(**request.model_dump())
    return await StyleService.create_style(store, style)


@router.get("/styles/{style_id}", response_model=Style)
async def admin_get_style(style_id: str, store: DocumentStore = Depends(get_store)):
    return await StyleService.get_style(store, style_id)


@router.put("/styles/{style_id}", response_model=Style)
async def admin_update_style(
    style_id: str,
    request: StyleUpdate,
    store: DocumentStore = Depends(get_store)
):
    fields = request.model_dump(by_alias=True, exclude_unset=True, mode="json")
    return await StyleService.update_style(store, style_id, fields)


@router.delete("/styles/{style_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_style(style_id: str, store: DocumentStore = Depends(get_store)):
    await StyleService.delete_style(store, style_id)


@router.delete("/styles", response_model=DeleteAllResponse)
async def admin_delete_all_styles(
    confirm: bool = Query(False, description="Must be true"),
    store: DocumentStore = Depends(get_store),
    admin: CurrentUser = Depends(require_admin)
):
    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Pass confirm=true to delete every style"
        )
    deleted = await StyleService.delete_all(store)
    logger.warning(f"Admin {admin.uid} deleted all styles ({deleted})")
    return DeleteAllResponse(deleted=deleted)


@router.post("/styles/import", response_model=ImportResponse)
async def admin_import_styles(
    items: List[Any] = Body(...),
    store: DocumentStore = Depends(get_store)
):
    """
    Bulk import from a JSON array of {prompt, imageUrl, status?, category?, tags?}.
    Items whose prompt already exists are skipped.
    """
    try:
        result = await StyleService.import_styles(store, items)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return ImportResponse(created=result.created, skipped=result.skipped)


@router.post("/styles/bulk-status", response_model=BulkStatusResponse)
async def admin_bulk_status(request: BulkStatusRequest, store: DocumentStore = Depends(get_store)):
    updated = await StyleService.bulk_update_status(store, request.status, category=request.category)
    return BulkStatusResponse(updated=updated)


# ============= Generations =============

@router.get("/generations", response_model=List[Generation])
async def admin_list_generations(
    user_id: Optional[str] = Query(None, alias="userId"),
    style_name: Optional[str] = Query(None, alias="styleName"),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    store: DocumentStore = Depends(get_store)
):
    return await GenerationHistoryService.list_generations(
        store, user_id=user_id, style_name=style_name, limit=limit
    )


@router.get("/generations/style-names", response_model=List[str])
async def admin_generation_style_names(store: DocumentStore = Depends(get_store)):
    return await GenerationHistoryService.style_names(store)


@router.delete("/generations/{generation_id}", response_model=DeleteGenerationResponse)
async def admin_delete_generation(
    generation_id: str,
    delete_images: bool = Query(True, alias="deleteImages"),
    store: DocumentStore = Depends(get_store),
    image_host: ImageHost = Depends(get_image_host)
):
    """Delete a generation; hosted images are removed best-effort."""
    deleted = await GenerationHistoryService.delete_as_admin(
        store, image_host, generation_id, delete_images=delete_images
    )
    return DeleteGenerationResponse(images_deleted=deleted)


# ============= Users =============

@router.get("/users/{user_id}/tokens", response_model=UserTokensResponse)
async def admin_get_tokens(user_id: str, store: DocumentStore = Depends(get_store)):
    return UserTokensResponse(user_id=user_id, tokens=await TokenService.get_balance(store, user_id))


@router.post("/users/{user_id}/tokens/add", response_model=UserTokensResponse)
async def admin_add_tokens(
    user_id: str,
    request: TokenAddRequest,
    store: DocumentStore = Depends(get_store)
):
    await TokenService.credit(store, user_id, request.amount)
    return UserTokensResponse(user_id=user_id, tokens=await TokenService.get_balance(store, user_id))


@router.put("/users/{user_id}/tokens", response_model=UserTokensResponse)
async def admin_set_tokens(
    user_id: str,
    request: TokenSetRequest,
    store: DocumentStore = Depends(get_store)
):
    await TokenService.set_balance(store, user_id, request.tokens)
    return UserTokensResponse(user_id=user_id, tokens=request.tokens)


@router.delete("/users/{user_id}", response_model=PurgeResponse)
async def admin_purge_user(
    user_id: str,
    store: DocumentStore = Depends(get_store),
    image_host: ImageHost = Depends(get_image_host)
):
    """Remove a user's token account, generations and hosted images."""
    result = await GenerationHistoryService.purge_user(store, image_host, user_id)
    return PurgeResponse(
        generations_deleted=result.generations_deleted,
        images_deleted=result.images_deleted,
        images_failed=result.images_failed
    )


# ============= Settings =============

@router.get("/settings/tokens", response_model=TokenSettings)
async def admin_get_token_settings(store: DocumentStore = Depends(get_store)):
    return await SettingsService.get_token_settings(store)


@router.put("/settings/tokens", response_model=TokenSettings)
async def admin_save_token_settings(request: TokenSettings, store: DocumentStore = Depends(get_store)):
    await SettingsService.save_token_settings(store, request)
    return await SettingsService.get_token_settings(store)


@router.get("/settings/ai", response_model=ApiKeyStatusResponse)
async def admin_ai_key_status(store: DocumentStore = Depends(get_store)):
    """Whether an AI key is configured and where it comes from. The key itself is never returned."""
    if settings.ai_api_key and settings.ai_api_key.strip():
        return ApiKeyStatusResponse(configured=True, source="environment")
    key = await SettingsService.get_ai_api_key(store)
    return ApiKeyStatusResponse(configured=bool(key), source="settings" if key else None)


@router.put("/settings/ai", response_model=ApiKeyStatusResponse)
async def admin_save_ai_key(request: ApiKeyRequest, store: DocumentStore = Depends(get_store)):
    await SettingsService.save_ai_api_key(store, request.api_key)
    return await admin_ai_key_status(store)


@router.post("/settings/ai/test", response_model=ConnectionTestResponse)
async def admin_test_ai_key(request: ApiKeyTestRequest, store: DocumentStore = Depends(get_store)):
    """Check a key (or the saved one) against the image generation API."""
    provider = await get_image_provider(store, api_key=request.api_key)
    if not provider.is_configured():
        return ConnectionTestResponse(ok=False, message="AI API key not configured")
    if await provider.test_connection():
        return ConnectionTestResponse(ok=True, message="API key is valid")
    return ConnectionTestResponse(ok=False, message="API key was rejected")


@router.get("/settings/midtrans")
async def admin_get_midtrans(store: DocumentStore = Depends(get_store)) -> Dict[str, Any]:
    """Gateway config with the server key masked."""
    config = await SettingsService.get_midtrans_config(store)
    if config is None:
        return {"configured": False}
    return {
        "configured": True,
        "clientKey": config.client_key,
        "serverKey": "*" * max(0, len(config.server_key) - 4) + config.server_key[-4:],
        "isProduction": config.is_production,
    }


@router.put("/settings/midtrans")
async def admin_save_midtrans(request: MidtransConfig, store: DocumentStore = Depends(get_store)):
    await SettingsService.save_midtrans_config(store, request)
    return await admin_get_midtrans(store)


@router.get("/settings/general", response_model=GeneralSettings)
async def admin_get_general(store: DocumentStore = Depends(get_store)):
    return await SettingsService.get_general_settings(store)


@router.put("/settings/general", response_model=GeneralSettings)
async def admin_save_general(request: GeneralSettings, store: DocumentStore = Depends(get_store)):
    await SettingsService.save_general_settings(store, request)
    return await SettingsService.get_general_settings(store)


@router.get("/settings/beta-tester", response_model=BetaTesterSettings)
async def admin_get_beta_settings(store: DocumentStore = Depends(get_store)):
    return await SettingsService.get_beta_tester_settings(store)


@router.put("/settings/beta-tester", response_model=BetaTesterSettings)
async def admin_save_beta_settings(request: BetaTesterSettings, store: DocumentStore = Depends(get_store)):
    await SettingsService.save_beta_tester_settings(store, request)
    return await SettingsService.get_beta_tester_settings(store)


# ============= Top-up plans and transactions =============

@router.get("/topup-plans", response_model=List[TopupPlan])
async def admin_list_plans(store: DocumentStore = Depends(get_store)):
    """Stored plans only; an empty list means the built-in defaults are served."""
    return await TopupRepository.list_plans(store)


@router.post("/topup-plans", response_model=TopupPlan, status_code=status.HTTP_201_CREATED)
async def admin_create_plan(request: TopupPlan, store: DocumentStore = Depends(get_store)):
    return await TopupRepository.save_plan(store, request.model_copy(update={"id": None}))


@router.put("/topup-plans/{plan_id}", response_model=TopupPlan)
async def admin_update_plan(plan_id: str, request: TopupPlan, store: DocumentStore = Depends(get_store)):
    existing = await TopupRepository.get_plan(store, plan_id)
    created_at = existing.created_at if existing else None
    return await TopupRepository.save_plan(
        store, request.model_copy(update={"id": plan_id, "created_at": created_at})
    )


@router.delete("/topup-plans/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_plan(plan_id: str, store: DocumentStore = Depends(get_store)):
    await TopupRepository.delete_plan(store, plan_id)


@router.get("/topups", response_model=List[TopupTransaction])
async def admin_list_topups(
    user_id: Optional[str] = Query(None, alias="userId"),
    status_filter: Optional[str] = Query(None, alias="status"),
    store: DocumentStore = Depends(get_store)
):
    return await TopupRepository.list_transactions(store, user_id=user_id, status=status_filter)


@router.post("/topups/retry", response_model=TopupStatusResponse)
async def admin_retry_topup(
    request: CompleteTopupRequest,
    store: DocumentStore = Depends(get_store),
    gateway: MidtransClient = Depends(get_payment_gateway)
):
    """
    Re-run settlement for an order, e.g. after the store hit its quota.

    Returns 503 with retryAfter while the store quota stays exhausted.
    """
    try:
        outcome = await TopupService.confirm_with_gateway(store, gateway, request.order_id)
    except ResourceExhausted:
        logger.error(f"Store quota exhausted while retrying top-up {request.order_id}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "Store quota exceeded. Please try again later.",
                "retryAfter": RETRY_AFTER_SECONDS,
            },
            headers={"Retry-After": str(RETRY_AFTER_SECONDS)}
        )
    return TopupStatusResponse(order_id=outcome.order_id, status=outcome.status, credited=outcome.credited)


# ============= Feedback =============

@router.get("/feedback", response_model=List[Feedback])
async def admin_list_feedback(
    category: Optional[FeedbackCategory] = Query(None),
    store: DocumentStore = Depends(get_store)
):
    """All feedback newest first, optionally for one category."""
    return await FeedbackService.list_feedback(store, category=category)


@router.get("/feedback/unread-count", response_model=UnreadCountResponse)
async def admin_unread_feedback(store: DocumentStore = Depends(get_store)):
    return UnreadCountResponse(unread=await FeedbackService.unread_count(store))


@router.get("/feedback/{feedback_id}", response_model=Feedback)
async def admin_get_feedback(feedback_id: str, store: DocumentStore = Depends(get_store)):
    return await FeedbackService.get_feedback(store, feedback_id)


@router.post("/feedback/{feedback_id}/read", response_model=Feedback)
async def admin_mark_feedback_read(feedback_id: str, store: DocumentStore = Depends(get_store)):
    return await FeedbackService.mark_read(store, feedback_id)


@router.patch("/feedback/{feedback_id}", response_model=Feedback)
async def admin_update_feedback(
    feedback_id: str,
    request: FeedbackUpdateRequest,
    store: DocumentStore = Depends(get_store)
):
    return await FeedbackService.update_feedback(
        store, feedback_id, status=request.status, admin_notes=request.admin_notes
    )


@router.delete("/feedback/{feedback_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_feedback(
    feedback_id: str,
    store: DocumentStore = Depends(get_store),
    image_host: ImageHost = Depends(get_image_host)
):
    await FeedbackService.delete_feedback(store, image_host, feedback_id)


# ============= Beta testers and visitors =============

@router.get("/beta-testers", response_model=List[BetaTester])
async def admin_list_beta_testers(store: DocumentStore = Depends(get_store)):
    return await BetaTesterService.list_testers(store)


@router.get("/visitors/stats", response_model=VisitorStatsResponse)
async def admin_visitor_stats(store: DocumentStore = Depends(get_store)):
    """Visitors active in the last 5 minutes, new today (UTC) and in total."""
    stats = await VisitorService.stats(store)
    return VisitorStatsResponse(active=stats.active, today=stats.today, total=stats.total)


# ============= Analytics =============

@router.get("/analytics")
async def admin_analytics(
    period: str = Query("7days"),
    store: DocumentStore = Depends(get_store)
) -> Dict[str, Any]:
    """Dashboard totals, generations per day, popular styles and recent generations."""
    if period not in PERIOD_DAYS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid period: {period}. Must be one of: {', '.join(PERIOD_DAYS)}"
        )
    return await AnalyticsService.dashboard(store, period=period)
