"""
Generation pipeline.

Runs one photo-styling request end to end:

    idle -> uploading -> processing -> generating -> saving -> complete

Any failing step aborts the run, resets the phase to idle and re-raises.
Balance and quota are only touched after at least one result image is
stored on our image host, so a failed generation never costs anything.
The history record is written last and its failure is only logged.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from app.ai.base import ImageGenerationProvider
from app.db.base import DocumentStore
from app.exceptions import (
    GenerationFailed,
    ImageSaveFailed,
    InsufficientBalance,
    QuotaExceeded,
    StyleNotFound,
)
from app.models.base import utcnow
from app.models.generation import Generation, GeoLocation
from app.models.style import Style
from app.repositories.generation_repository import GenerationRepository
from app.repositories.style_repository import StyleRepository
from app.services.quota_service import Identity, QuotaGuard
from app.services.rehost_service import ImageRehoster
from app.services.settings_service import SettingsService
from app.services.token_service import TokenService
from app.storage.image_host import ImageHost
from app.utils.logging import log_generation_completed, log_generation_failed, log_generation_started
from app.utils.metrics import generation_duration_seconds, generations_total

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    GENERATING = "generating"
    SAVING = "saving"
    COMPLETE = "complete"


ProgressCallback = Callable[[Phase, str], None]


@dataclass
class GenerationRequest:
    identity: Identity
    style_id: str
    image_bytes: bytes
    content_type: Optional[str] = None
    custom_prompt: Optional[str] = None
    location: Optional[GeoLocation] = None


@dataclass
class GenerationResult:
    image_urls: List[str]
    original_image_url: str
    failed_count: int
    generation_id: Optional[str] = None  # None if the history write failed
    tokens_remaining: Optional[int] = None  # authenticated users
    anonymous_remaining: Optional[int] = None  # anonymous visitors

    @property
    def partial(self) -> bool:
        return self.failed_count > 0


def resolve_prompt(style: Style, custom_prompt: Optional[str]) -> str:
    """User-edited prompt if non-empty after trimming, else the style's prompt."""
    if custom_prompt and custom_prompt.strip():
        return custom_prompt.strip()
    return style.prompt


class GenerationPipeline:
    """
    Orchestrates a single generation run.

    Collaborators are injected so tests can swap the provider, image host and
    rehoster for fakes.
    """

    def __init__(
        self,
        store: DocumentStore,
        provider: ImageGenerationProvider,
        image_host: ImageHost,
        rehoster: ImageRehoster,
        guard: Optional[QuotaGuard] = None,
        on_progress: Optional[ProgressCallback] = None
    ):
        self.store = store
        self.provider = provider
        self.image_host = image_host
        self.rehoster = rehoster
        self.guard = guard or QuotaGuard(store)
        self.on_progress = on_progress
        self.phase = Phase.IDLE

    def _enter(self, phase: Phase, message: str) -> None:
        self.phase = phase
        logger.debug(f"Generation phase {phase.value}: {message}")
        if self.on_progress:
            self.on_progress(phase, message)

    async def run(self, request: GenerationRequest) -> GenerationResult:
        """
        Execute the pipeline.

        Raises:
            InsufficientBalance: Authenticated balance below the cost
            QuotaExceeded: Anonymous daily limit reached
            StyleNotFound: Unknown style id
            GenerationFailed / GenerationTimeout: Provider failure
            ImageSaveFailed: No result image could be stored
        """
        identity = request.identity
        identity_label = "user" if identity.is_authenticated else "anonymous"
        start_time = time.time()
        token_settings = await SettingsService.get_token_settings(self.store)

        try:
            await self.guard.check(identity, token_settings)
        except (InsufficientBalance, QuotaExceeded):
            generations_total.labels(status="blocked", identity=identity_label).inc()
            raise

        log_generation_started(
            logger,
            style_id=request.style_id,
            user_id=identity.user_id,
            anonymous_id=identity.anonymous_id
        )

        try:
            result = await self._execute(
                request,
                token_settings.token_cost_per_generate,
                token_settings.max_anonymous_generations
            )
        except Exception as e:
            failed_phase = self.phase.value
            self.phase = Phase.IDLE
            duration = time.time() - start_time
            generations_total.labels(status="failed", identity=identity_label).inc()
            generation_duration_seconds.labels(status="failed").observe(duration)
            log_generation_failed(
                logger,
                phase=failed_phase,
                error=str(e),
                user_id=identity.user_id,
                duration_ms=duration * 1000
            )
            raise

        duration = time.time() - start_time
        status = "partial" if result.partial else "completed"
        generations_total.labels(status=status, identity=identity_label).inc()
        generation_duration_seconds.labels(status=status).observe(duration)
        log_generation_completed(
            logger,
            image_count=len(result.image_urls),
            failed_count=result.failed_count,
            generation_id=result.generation_id,
            user_id=identity.user_id,
            duration_ms=duration * 1000
        )
        return result

    async def _execute(self, request: GenerationRequest, cost: int, anonymous_max: int) -> GenerationResult:
        identity = request.identity

        self._enter(Phase.UPLOADING, "Uploading image...")
        original_url = await self._upload_original(request)

        self._enter(Phase.PROCESSING, "Preparing style...")
        style = await StyleRepository.get(self.store, request.style_id)
        if style is None:
            raise StyleNotFound(request.style_id)
        prompt = resolve_prompt(style, request.custom_prompt)

        self._enter(Phase.GENERATING, "Generating image...")
        urls = await self.provider.generate(request.image_bytes, prompt)
        if not urls:
            raise GenerationFailed("No images generated")

        self._enter(Phase.SAVING, f"Saving {len(urls)} image(s)...")
        rehosted = await self.rehoster.rehost_all(urls, identity.user_id)
        if not rehosted.urls:
            raise ImageSaveFailed(f"Failed to save all {len(urls)} generated images")

        result = GenerationResult(
            image_urls=rehosted.urls,
            original_image_url=original_url,
            failed_count=rehosted.failed_count
        )

        if identity.is_authenticated:
            if not await TokenService.debit(self.store, identity.user_id, cost):
                balance = await TokenService.get_balance(self.store, identity.user_id)
                raise InsufficientBalance(balance=balance, cost=cost)
            result.tokens_remaining = await TokenService.get_balance(self.store, identity.user_id)
        else:
            count = await self.guard.record_anonymous_generation(identity.anonymous_id)
            result.anonymous_remaining = max(0, anonymous_max - count)

        result.generation_id = await self._record(request, style, result)
        self._enter(Phase.COMPLETE, "Done")
        return result

    async def _upload_original(self, request: GenerationRequest) -> str:
        try:
            return await self.image_host.upload(
                request.image_bytes,
                kind="original",
                owner=request.identity.user_id,
                content_type=request.content_type
            )
        except Exception as e:
            logger.warning(f"Original image upload failed, continuing without it: {e}")
            return ""

    async def _record(self, request: GenerationRequest, style: Style, result: GenerationResult) -> Optional[str]:
        generation = Generation(
            user_id=request.identity.user_id,
            anonymous_id=request.identity.anonymous_id,
            style_id=request.style_id,
            style_name=style.name,
            original_image_url=result.original_image_url,
            generated_image_urls=result.image_urls,
            location=request.location,
            created_at=utcnow()
        )
        try:
            return await GenerationRepository.create(self.store, generation)
        except Exception as e:
            logger.warning(f"Generation record not saved (images are stored): {e}")
            return None
