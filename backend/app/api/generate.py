"""
Generation endpoints.

POST /ai/generate runs the full pipeline for an authenticated user (bearer
token) or an anonymous visitor (anonymousId form field).
GET /quota reports what the caller can still generate.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile, status

from app.ai.base import ImageGenerationProvider
from app.api.deps import get_image_host, get_provider, get_rehoster
from app.auth.dependencies import CurrentUser, get_optional_user
from app.database import get_store
from app.db.base import DocumentStore
from app.models.generation import GeoLocation
from app.schemas.generation import GenerateResponse, QuotaResponse
from app.services.generation_service import GenerationPipeline, GenerationRequest
from app.services.quota_service import Identity, QuotaGuard
from app.services.rehost_service import ImageRehoster
from app.services.settings_service import SettingsService
from app.services.token_service import TokenService
from app.storage.image_host import ImageHost
from app.utils.images import is_image

router = APIRouter()
logger = logging.getLogger(__name__)


def request_location(request: Request) -> Optional[GeoLocation]:
    """Best-effort location from proxy headers (Cloudflare / load balancer)."""
    forwarded = request.headers.get("x-forwarded-for", "")
    ip = forwarded.split(",")[0].strip() or request.headers.get("x-real-ip")
    if not ip and request.client:
        ip = request.client.host
    country = request.headers.get("cf-ipcountry")
    city = request.headers.get("cf-ipcity")
    if not (ip or country or city):
        return None
    return GeoLocation(country=country, city=city, ip=ip)


def resolve_identity(user: Optional[CurrentUser], anonymous_id: Optional[str]) -> Identity:
    if user is not None:
        return Identity(user_id=user.uid)
    if anonymous_id and anonymous_id.strip():
        return Identity(anonymous_id=anonymous_id.strip())
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Sign in or provide an anonymousId"
    )


@router.post("/ai/generate", response_model=GenerateResponse)
async def generate(
    request: Request,
    image: UploadFile = File(...),
    style_id: str = Form(..., alias="styleId"),
    prompt: Optional[str] = Form(None),
    anonymous_id: Optional[str] = Form(None, alias="anonymousId"),
    store: DocumentStore = Depends(get_store),
    provider: ImageGenerationProvider = Depends(get_provider),
    image_host: ImageHost = Depends(get_image_host),
    rehoster: ImageRehoster = Depends(get_rehoster),
    current_user: Optional[CurrentUser] = Depends(get_optional_user)
):
    """
    Generate styled images from an uploaded photo.

    Errors:
    - 402 (action=topup): balance below the generation cost
    - 429 (action=login): anonymous daily limit reached
    - 404: unknown style
    - 502/504: AI provider failure or timeout, or no image could be saved
    """
    identity = resolve_identity(current_user, anonymous_id)

    image_bytes = await image.read()
    if not image_bytes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Image is empty")
    if not is_image(image_bytes, image.content_type):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be an image")

    pipeline = GenerationPipeline(store, provider, image_host, rehoster)
    result = await pipeline.run(GenerationRequest(
        identity=identity,
        style_id=style_id,
        image_bytes=image_bytes,
        content_type=image.content_type,
        custom_prompt=prompt,
        location=request_location(request)
    ))

    return GenerateResponse(
        images=result.image_urls,
        original_image_url=result.original_image_url,
        failed_count=result.failed_count,
        partial=result.partial,
        generation_id=result.generation_id,
        tokens_remaining=result.tokens_remaining,
        anonymous_remaining=result.anonymous_remaining
    )


@router.get("/quota", response_model=QuotaResponse)
async def get_quota(
    anonymous_id: Optional[str] = Query(None, alias="anonymousId"),
    store: DocumentStore = Depends(get_store),
    current_user: Optional[CurrentUser] = Depends(get_optional_user)
):
    """Balance for signed-in users; free generations left for anonymous visitors."""
    identity = resolve_identity(current_user, anonymous_id)
    token_settings = await SettingsService.get_token_settings(store)
    cost = token_settings.token_cost_per_generate

    if identity.is_authenticated:
        tokens = await TokenService.get_balance(store, identity.user_id)
        return QuotaResponse(authenticated=True, cost=cost, tokens=tokens, can_generate=tokens >= cost)

    limit = token_settings.max_anonymous_generations
    used = await QuotaGuard(store).get_anonymous_count(identity.anonymous_id)
    remaining = max(0, limit - used)
    return QuotaResponse(
        authenticated=False,
        cost=cost,
        can_generate=remaining > 0,
        anonymous_used=used,
        anonymous_limit=limit,
        anonymous_remaining=remaining
    )
