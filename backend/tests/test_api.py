"""
Tests for API endpoints.
Uses httpx AsyncClient for testing FastAPI routes.
"""
import json
from datetime import datetime, timezone

import httpx
import pytest
from google.api_core.exceptions import ResourceExhausted
from httpx import AsyncClient

from app.db import collections
from app.models.generation import Generation
from app.models.settings import MidtransConfig
from app.models.topup import TopupTransaction
from app.repositories.generation_repository import GenerationRepository
from app.repositories.topup_repository import TopupRepository
from app.services.midtrans_service import MidtransClient, compute_signature
from app.services.token_service import TokenService

from conftest import JPEG_BYTES, PNG_BYTES, PUBLIC_BASE, TEST_UID

SERVER_KEY = "SB-Mid-server-api"
ORDER_ID = "TOPUP-1700000000000-APITEST"


async def _configure_midtrans(store):
    await store.set(collections.SETTINGS, "midtrans", {
        "serverKey": SERVER_KEY,
        "clientKey": "SB-Mid-client-api",
        "isProduction": False,
    })


async def _pending_topup(store, user_id=TEST_UID):
    return await TopupRepository.create_transaction(store, TopupTransaction(
        user_id=user_id,
        package_id="1",
        diamonds=100,
        bonus=0,
        price=10000,
        order_id=ORDER_ID,
    ))


def _override_gateway(handler):
    """Point the payment gateway dependency at a mock Midtrans API."""
    from app.api.deps import get_payment_gateway
    from app.main import app

    config = MidtransConfig(server_key=SERVER_KEY, client_key="SB-Mid-client-api")
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_payment_gateway] = lambda: MidtransClient(config, http_client=http_client)


class TestRootEndpoint:
    """Tests for root, health and metrics endpoints."""

    @pytest.mark.asyncio
    async def test_root_returns_info(self, anonymous_client: AsyncClient):
        """Test root endpoint returns API info."""
        response = await anonymous_client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "edit Aja API"
        assert "version" in data

    @pytest.mark.asyncio
    async def test_health(self, anonymous_client: AsyncClient):
        """Health reports a connected store and a configured image host."""
        response = await anonymous_client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["store"] == "connected"
        assert data["imageHost"] == "configured"

    @pytest.mark.asyncio
    async def test_metrics(self, anonymous_client: AsyncClient):
        """Prometheus metrics are exposed."""
        await anonymous_client.get("/")
        response = await anonymous_client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text


class TestStyleEndpoints:
    """Tests for the public style catalog."""

    @pytest.mark.asyncio
    async def test_list_styles(self, anonymous_client: AsyncClient, test_style):
        """Active styles are listed with camelCase fields."""
        response = await anonymous_client.get("/api/styles")

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["id"] == test_style.id
        assert data[0]["imageUrl"] == test_style.image_url
        assert data[0]["status"] == "Active"

    @pytest.mark.asyncio
    async def test_search_styles(self, anonymous_client: AsyncClient, test_style):
        """The q parameter filters by name."""
        hit = await anonymous_client.get("/api/styles", params={"q": "anim"})
        miss = await anonymous_client.get("/api/styles", params={"q": "sketch"})

        assert len(hit.json()) == 1
        assert miss.json() == []

    @pytest.mark.asyncio
    async def test_trending(self, anonymous_client: AsyncClient, test_style):
        """Trending falls back to the catalog when nothing was generated."""
        response = await anonymous_client.get("/api/styles/trending")

        assert response.status_code == 200
        assert [s["id"] for s in response.json()] == [test_style.id]


class TestGenerateEndpoint:
    """Tests for POST /api/ai/generate and GET /api/quota."""

    @pytest.mark.asyncio
    async def test_generate_authenticated(self, client: AsyncClient, test_style, store):
        """A funded user gets re-hosted images and is charged the cost."""
        response = await client.post(
            "/api/ai/generate",
            files={"image": ("photo.png", PNG_BYTES, "image/png")},
            data={"styleId": test_style.id},
            headers={"cf-ipcountry": "ID", "x-forwarded-for": "203.0.113.9, 10.0.0.1"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert len(data["images"]) == 2
        assert all(url.startswith(PUBLIC_BASE) for url in data["images"])
        assert data["tokensRemaining"] == 15
        assert data["partial"] is False

        generation = await GenerationRepository.get(store, data["generationId"])
        assert generation.location.country == "ID"
        assert generation.location.ip == "203.0.113.9"

    @pytest.mark.asyncio
    async def test_generate_insufficient_balance(self, client: AsyncClient, test_style, store, provider):
        """Balance below cost answers 402 with action=topup."""
        await TokenService.set_balance(store, TEST_UID, 5)

        response = await client.post(
            "/api/ai/generate",
            files={"image": ("photo.png", PNG_BYTES, "image/png")},
            data={"styleId": test_style.id}
        )

        assert response.status_code == 402
        detail = response.json()["detail"]
        assert detail["action"] == "topup"
        assert detail["balance"] == 5
        assert detail["cost"] == 10
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_generate_anonymous_limit(self, anonymous_client: AsyncClient, test_style):
        """The second anonymous generation of the day answers 429 with action=login."""
        form = {"styleId": test_style.id, "anonymousId": "fp-api"}
        files = {"image": ("photo.jpg", JPEG_BYTES, "image/jpeg")}

        first = await anonymous_client.post("/api/ai/generate", files=files, data=form)
        second = await anonymous_client.post("/api/ai/generate", files=files, data=form)

        assert first.status_code == 200
        assert first.json()["anonymousRemaining"] == 0
        assert second.status_code == 429
        assert second.json()["detail"]["action"] == "login"
        assert second.json()["detail"]["limit"] == 1

    @pytest.mark.asyncio
    async def test_generate_requires_identity(self, anonymous_client: AsyncClient, test_style):
        """Without a user or anonymousId the request is rejected."""
        response = await anonymous_client.post(
            "/api/ai/generate",
            files={"image": ("photo.png", PNG_BYTES, "image/png")},
            data={"styleId": test_style.id}
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_generate_rejects_non_image(self, client: AsyncClient, test_style):
        """Non-image uploads are rejected."""
        response = await client.post(
            "/api/ai/generate",
            files={"image": ("notes.txt", b"hello", "text/plain")},
            data={"styleId": test_style.id}
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_generate_unknown_style(self, client: AsyncClient, store):
        """Unknown style ids answer 404 and cost nothing."""
        response = await client.post(
            "/api/ai/generate",
            files={"image": ("photo.png", PNG_BYTES, "image/png")},
            data={"styleId": "does-not-exist"}
        )

        assert response.status_code == 404
        assert await TokenService.get_balance(store, TEST_UID) == 25

    @pytest.mark.asyncio
    async def test_quota_authenticated(self, client: AsyncClient):
        """Signed-in users see their balance and the cost."""
        response = await client.get("/api/quota")

        data = response.json()
        assert data["authenticated"] is True
        assert data["tokens"] == 25
        assert data["cost"] == 10
        assert data["canGenerate"] is True

    @pytest.mark.asyncio
    async def test_quota_anonymous(self, anonymous_client: AsyncClient):
        """Anonymous visitors see today's remaining free generations."""
        response = await anonymous_client.get("/api/quota", params={"anonymousId": "fp-new"})

        data = response.json()
        assert data["authenticated"] is False
        assert data["anonymousRemaining"] == 1
        assert data["canGenerate"] is True


class TestUploadEndpoints:
    """Tests for image uploads."""

    @pytest.mark.asyncio
    async def test_upload_original(self, anonymous_client: AsyncClient, r2):
        """Uploads land under {type}/{userId}/ with a sniffed extension."""
        response = await anonymous_client.post(
            "/api/upload",
            files={"file": ("photo", JPEG_BYTES, "application/octet-stream")},
            data={"userId": "u1", "type": "original"}
        )

        assert response.status_code == 200
        url = response.json()["url"]
        assert url.startswith(f"{PUBLIC_BASE}/original/u1/")
        assert url.endswith(".jpg")
        assert len(r2.objects) == 1

    @pytest.mark.asyncio
    async def test_upload_invalid_type(self, anonymous_client: AsyncClient):
        """Unknown upload types are rejected."""
        response = await anonymous_client.post(
            "/api/upload",
            files={"file": ("photo.png", PNG_BYTES, "image/png")},
            data={"type": "avatar"}
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_upload_empty_file(self, anonymous_client: AsyncClient):
        """Empty files are rejected."""
        response = await anonymous_client.post(
            "/api/upload",
            files={"file": ("photo.png", b"", "image/png")}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "No file uploaded"

    @pytest.mark.asyncio
    async def test_save_generated(self, anonymous_client: AsyncClient):
        """A provider URL is re-hosted under generated/{userId}/."""
        response = await anonymous_client.post(
            "/api/image/save-generated",
            json={"imageUrl": "https://cdn.ai.test/result-0.png", "userId": "u1", "index": 3}
        )

        assert response.status_code == 200
        url = response.json()["url"]
        assert url.startswith(f"{PUBLIC_BASE}/generated/u1/generated_")
        assert url.endswith("_3.png")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("image_url", [
        "http://169.254.169.254/latest/meta-data/",
        "http://localhost:8080/admin.png",
        "http://metadata.internal.test/token",
        "https://intranet.test/a.png",
        "http://[::1]/a.png",
        "file:///etc/passwd",
        "ftp://cdn.ai.test/a.png",
    ])
    async def test_save_generated_rejects_non_public_hosts(self, anonymous_client: AsyncClient, r2, image_url):
        """URLs pointing into private networks are refused before any download."""
        response = await anonymous_client.post(
            "/api/image/save-generated",
            json={"imageUrl": image_url, "userId": "u1"}
        )

        assert response.status_code == 400
        assert r2.objects == {}


class TestMeEndpoints:
    """Tests for the signed-in user's endpoints."""

    @pytest.mark.asyncio
    async def test_get_tokens(self, client: AsyncClient):
        """Balance is returned with the uid."""
        response = await client.get("/api/me/tokens")

        assert response.status_code == 200
        assert response.json() == {"tokens": 25, "userId": TEST_UID}

    @pytest.mark.asyncio
    async def test_tokens_require_auth(self, anonymous_client: AsyncClient):
        """Anonymous callers get 401."""
        response = await anonymous_client.get("/api/me/tokens")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_delete_own_and_foreign_generation(self, client: AsyncClient, store, test_style):
        """Own generations can be deleted; other users' answer 403."""
        own = await GenerationRepository.create(store, Generation(
            user_id=TEST_UID, style_id=test_style.id, style_name=test_style.name
        ))
        foreign = await GenerationRepository.create(store, Generation(
            user_id="someone-else", style_id=test_style.id, style_name=test_style.name
        ))

        listed = await client.get("/api/me/generations")
        assert [g["id"] for g in listed.json()] == [own]

        assert (await client.delete(f"/api/me/generations/{own}")).status_code == 200
        assert (await client.delete(f"/api/me/generations/{foreign}")).status_code == 403
        assert (await client.delete("/api/me/generations/missing")).status_code == 404


class TestTopupEndpoints:
    """Tests for plans, checkout and completion."""

    @pytest.mark.asyncio
    async def test_plans(self, anonymous_client: AsyncClient):
        """Default plans are served when none are stored."""
        response = await anonymous_client.get("/api/topups/plans")

        assert response.status_code == 200
        plans = response.json()
        assert [p["id"] for p in plans] == ["1", "2", "3"]
        assert plans[1]["popular"] is True

    @pytest.mark.asyncio
    async def test_gateway_config_not_configured(self, anonymous_client: AsyncClient):
        """Without keys the gateway config answers 503."""
        response = await anonymous_client.get("/api/midtrans/config")

        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_gateway_config(self, anonymous_client: AsyncClient, store):
        """The client key and sandbox Snap URL are returned, never the server key."""
        await _configure_midtrans(store)

        response = await anonymous_client.get("/api/midtrans/config")

        data = response.json()
        assert data["clientKey"] == "SB-Mid-client-api"
        assert data["snapUrl"] == "https://app.sandbox.midtrans.com/snap/snap.js"
        assert SERVER_KEY not in response.text

    @pytest.mark.asyncio
    async def test_create_topup(self, client: AsyncClient, store):
        """Checkout returns a Snap token and stores a pending transaction."""
        await _configure_midtrans(store)
        sent = {}

        def handler(request: httpx.Request) -> httpx.Response:
            sent["body"] = json.loads(request.content)
            return httpx.Response(201, json={"token": "snap-abc", "redirect_url": "https://pay.test/abc"})

        _override_gateway(handler)

        response = await client.post("/api/midtrans/create", json={"packageId": "2"})

        assert response.status_code == 200
        data = response.json()
        assert data["token"] == "snap-abc"
        assert data["orderId"].startswith("TOPUP-")
        assert sent["body"]["transaction_details"]["gross_amount"] == 22500
        assert sent["body"]["item_details"][0]["name"] == "250 Diamonds + 25 Bonus"

        transaction = await TopupRepository.get_transaction(store, data["transactionId"])
        assert transaction.status == "pending"
        assert transaction.user_id == TEST_UID

    @pytest.mark.asyncio
    async def test_create_topup_unknown_plan(self, client: AsyncClient, store):
        """Unknown packages answer 404."""
        await _configure_midtrans(store)
        _override_gateway(lambda request: httpx.Response(201, json={"token": "x"}))

        response = await client.post("/api/midtrans/create", json={"packageId": "99"})

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_complete_topup(self, client: AsyncClient, store):
        """Completion credits the buyer once the gateway confirms settlement."""
        await _configure_midtrans(store)
        await _pending_topup(store)
        _override_gateway(lambda request: httpx.Response(200, json={"transaction_status": "settlement"}))

        response = await client.post("/api/midtrans/complete", json={"orderId": ORDER_ID})

        assert response.status_code == 200
        assert response.json()["credited"] is True
        assert await TokenService.get_balance(store, TEST_UID) == 125

    @pytest.mark.asyncio
    async def test_history(self, client: AsyncClient, store):
        """Users see their own top-ups."""
        await _pending_topup(store)
        await _pending_topup(store, user_id="other")

        response = await client.get("/api/topups/history")

        assert len(response.json()) == 1
        assert response.json()[0]["orderId"] == ORDER_ID


class TestMidtransCallback:
    """Tests for the payment notification webhook."""

    def _notification(self, status="settlement", status_code="200", gross_amount="10000.00", order_id=ORDER_ID):
        return {
            "order_id": order_id,
            "status_code": status_code,
            "gross_amount": gross_amount,
            "transaction_status": status,
            "payment_type": "qris",
            "signature_key": compute_signature(order_id, status_code, gross_amount, SERVER_KEY),
        }

    @pytest.mark.asyncio
    async def test_ping(self, anonymous_client: AsyncClient):
        """GET answers so the URL can be registered."""
        response = await anonymous_client.get("/api/midtrans/callback")

        assert response.json()["ok"] is True

    @pytest.mark.asyncio
    async def test_settlement_credits_once(self, anonymous_client: AsyncClient, store):
        """A signed settlement credits; a redelivery does not credit again."""
        await _configure_midtrans(store)
        await _pending_topup(store)

        first = await anonymous_client.post("/api/midtrans/callback", json=self._notification())
        second = await anonymous_client.post("/api/midtrans/callback", json=self._notification())

        assert first.json() == {"ok": True, "orderId": ORDER_ID, "status": "settlement", "credited": True}
        assert second.json()["credited"] is False
        assert await TokenService.get_balance(store, TEST_UID) == 100

    @pytest.mark.asyncio
    async def test_invalid_signature(self, anonymous_client: AsyncClient, store):
        """A forged signature answers 403 and credits nothing."""
        await _configure_midtrans(store)
        await _pending_topup(store)
        notification = self._notification()
        notification["gross_amount"] = "1.00"

        response = await anonymous_client.post("/api/midtrans/callback", json=notification)

        assert response.status_code == 403
        assert await TokenService.get_balance(store, TEST_UID) == 0

    @pytest.mark.asyncio
    async def test_signature_in_header(self, anonymous_client: AsyncClient, store):
        """The signature may arrive in the x-midtrans-signature header."""
        await _configure_midtrans(store)
        await _pending_topup(store)
        notification = self._notification()
        signature = notification.pop("signature_key")

        response = await anonymous_client.post(
            "/api/midtrans/callback",
            json=notification,
            headers={"x-midtrans-signature": signature}
        )

        assert response.json()["credited"] is True

    @pytest.mark.asyncio
    async def test_unknown_order(self, anonymous_client: AsyncClient, store):
        """Unknown orders answer 200 with ok=false."""
        await _configure_midtrans(store)

        response = await anonymous_client.post(
            "/api/midtrans/callback",
            json=self._notification(order_id="TOPUP-0-UNKNOWN")
        )

        assert response.status_code == 200
        assert response.json() == {"ok": False, "error": "Transaction not found", "orderId": "TOPUP-0-UNKNOWN"}

    @pytest.mark.asyncio
    async def test_invalid_json(self, anonymous_client: AsyncClient, store):
        """Malformed bodies answer 400."""
        await _configure_midtrans(store)

        response = await anonymous_client.post(
            "/api/midtrans/callback",
            content=b"not json",
            headers={"content-type": "application/json"}
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_order_id(self, anonymous_client: AsyncClient, store):
        """A notification without order_id answers 400."""
        await _configure_midtrans(store)

        response = await anonymous_client.post("/api/midtrans/callback", json={"transaction_status": "settlement"})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_gateway_not_configured(self, anonymous_client: AsyncClient):
        """Without keys notifications cannot be verified."""
        response = await anonymous_client.post("/api/midtrans/callback", json=self._notification())

        assert response.status_code == 503


class TestAdminEndpoints:
    """Tests for the admin API."""

    @pytest.mark.asyncio
    async def test_non_admin_forbidden(self, client: AsyncClient):
        """Signed-in users outside the admins collection get 403."""
        response = await client.get("/api/admin/styles")

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_anonymous_unauthorized(self, anonymous_client: AsyncClient):
        """Anonymous callers get 401."""
        response = await anonymous_client.get("/api/admin/styles")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_style_crud(self, admin_client: AsyncClient):
        """Admins can create, update, read and delete styles."""
        created = await admin_client.post("/api/admin/styles", json={
            "name": "Sketch",
            "prompt": "Pencil sketch",
            "imageUrl": f"{PUBLIC_BASE}/style/anonymous/sketch.png",
            "category": "Art",
        })
        assert created.status_code == 201
        style_id = created.json()["id"]

        updated = await admin_client.put(f"/api/admin/styles/{style_id}", json={"status": "Inactive"})
        assert updated.json()["status"] == "Inactive"
        assert updated.json()["category"] == "Art"

        public = await admin_client.get("/api/styles")
        assert public.json() == []

        assert (await admin_client.delete(f"/api/admin/styles/{style_id}")).status_code == 204
        assert (await admin_client.get(f"/api/admin/styles/{style_id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_all_requires_confirm(self, admin_client: AsyncClient, test_style):
        """Deleting every style needs confirm=true."""
        refused = await admin_client.delete("/api/admin/styles")
        confirmed = await admin_client.delete("/api/admin/styles", params={"confirm": "true"})

        assert refused.status_code == 400
        assert confirmed.json() == {"deleted": 1}

    @pytest.mark.asyncio
    async def test_import_styles(self, admin_client: AsyncClient, test_style):
        """Import skips prompts that already exist."""
        response = await admin_client.post("/api/admin/styles/import", json=[
            {"prompt": test_style.prompt.upper(), "imageUrl": "https://x.test/1.png"},
            {"prompt": "Watercolor", "imageUrl": "https://x.test/2.png"},
        ])

        assert response.status_code == 200
        assert response.json() == {"created": 1, "skipped": 1}

    @pytest.mark.asyncio
    async def test_import_malformed(self, admin_client: AsyncClient):
        """A malformed item answers 400 naming the item."""
        response = await admin_client.post("/api/admin/styles/import", json=[{"imageUrl": "x"}])

        assert response.status_code == 400
        assert "Item 1" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_bulk_status(self, admin_client: AsyncClient, test_style):
        """Bulk status reports how many styles changed."""
        response = await admin_client.post(
            "/api/admin/styles/bulk-status",
            json={"status": "Inactive", "category": "art"}
        )

        assert response.json() == {"updated": 1}

    @pytest.mark.asyncio
    async def test_token_management(self, admin_client: AsyncClient, store):
        """Admins can add to and overwrite a user's balance."""
        added = await admin_client.post("/api/admin/users/u9/tokens/add", json={"amount": 30})
        assert added.json() == {"userId": "u9", "tokens": 30}

        overwritten = await admin_client.put("/api/admin/users/u9/tokens", json={"tokens": 4})
        assert overwritten.json()["tokens"] == 4
        assert await TokenService.get_balance(store, "u9") == 4

        invalid = await admin_client.post("/api/admin/users/u9/tokens/add", json={"amount": 0})
        assert invalid.status_code == 422

    @pytest.mark.asyncio
    async def test_purge_user(self, admin_client: AsyncClient, store, r2, test_style):
        """Purging removes a user's balance, generations and images."""
        await TokenService.credit(store, "u9", 10)
        await GenerationRepository.create(store, Generation(
            user_id="u9", style_id=test_style.id, style_name=test_style.name
        ))
        r2.objects["generated/u9/a.png"] = b"x"

        response = await admin_client.delete("/api/admin/users/u9")

        assert response.json() == {"ok": True, "generationsDeleted": 1, "imagesDeleted": 1, "imagesFailed": 0}
        assert await store.get(collections.USER_TOKENS, "u9") is None

    @pytest.mark.asyncio
    async def test_generation_admin(self, admin_client: AsyncClient, store, test_style):
        """Admins can filter generations, list style names and delete records."""
        generation_id = await GenerationRepository.create(store, Generation(
            user_id="u1", style_id=test_style.id, style_name=test_style.name,
            generated_image_urls=["https://cdn.ai.test/foreign.png"]
        ))

        by_style = await admin_client.get("/api/admin/generations", params={"styleName": "Anime"})
        names = await admin_client.get("/api/admin/generations/style-names")
        deleted = await admin_client.delete(f"/api/admin/generations/{generation_id}")

        assert [g["id"] for g in by_style.json()] == [generation_id]
        assert names.json() == ["Anime"]
        assert deleted.json() == {"ok": True, "imagesDeleted": 0}
        assert await store.count(collections.GENERATIONS) == 0

    @pytest.mark.asyncio
    async def test_token_settings(self, admin_client: AsyncClient):
        """Token settings round-trip through the settings document."""
        saved = await admin_client.put("/api/admin/settings/tokens", json={
            "initialTokens": 50, "tokenCostPerGenerate": 5, "maxAnonymousGenerations": 2
        })
        fetched = await admin_client.get("/api/admin/settings/tokens")

        assert saved.status_code == 200
        assert fetched.json()["tokenCostPerGenerate"] == 5
        assert fetched.json()["maxAnonymousGenerations"] == 2

    @pytest.mark.asyncio
    async def test_ai_key_never_returned(self, admin_client: AsyncClient):
        """Saving the AI key reports its source but never echoes it."""
        before = await admin_client.get("/api/admin/settings/ai")
        saved = await admin_client.put("/api/admin/settings/ai", json={"apiKey": "fpk-secret"})

        assert before.json() == {"configured": False, "source": None}
        assert saved.json() == {"configured": True, "source": "settings"}
        assert "fpk-secret" not in saved.text

    @pytest.mark.asyncio
    async def test_midtrans_settings_masked(self, admin_client: AsyncClient):
        """The server key is masked except for its last four characters."""
        response = await admin_client.put("/api/admin/settings/midtrans", json={
            "serverKey": "SB-Mid-server-1234", "clientKey": "SB-Mid-client-9", "isProduction": False
        })

        data = response.json()
        assert data["configured"] is True
        assert data["serverKey"].endswith("1234")
        assert "SB-Mid-server" not in data["serverKey"]

    @pytest.mark.asyncio
    async def test_general_settings(self, admin_client: AsyncClient):
        """General settings default and update."""
        default = await admin_client.get("/api/admin/settings/general")
        saved = await admin_client.put("/api/admin/settings/general", json={
            "websiteName": "edit Aja Pro", "watermarkEnabled": False
        })

        assert default.json()["websiteName"] == "edit Aja"
        assert saved.json()["watermarkEnabled"] is False

    @pytest.mark.asyncio
    async def test_plan_crud(self, admin_client: AsyncClient):
        """Stored plans replace the defaults on the public endpoint."""
        created = await admin_client.post("/api/admin/topup-plans", json={
            "diamonds": 1000, "price": 75000, "bonus": 250, "order": 1
        })
        assert created.status_code == 201
        plan_id = created.json()["id"]

        updated = await admin_client.put(f"/api/admin/topup-plans/{plan_id}", json={
            "diamonds": 1000, "price": 70000, "bonus": 250, "order": 1
        })
        assert updated.json()["price"] == 70000

        plans = await admin_client.get("/api/topups/plans")
        assert [p["id"] for p in plans.json()] == [plan_id]

        assert (await admin_client.delete(f"/api/admin/topup-plans/{plan_id}")).status_code == 204

    @pytest.mark.asyncio
    async def test_retry_quota_exhausted(self, admin_client: AsyncClient, store, monkeypatch):
        """A store quota error during retry answers 503 with retryAfter."""
        await _pending_topup(store)
        _override_gateway(lambda request: httpx.Response(200, json={"transaction_status": "settlement"}))

        async def exhausted(store, order_id):
            raise ResourceExhausted("quota")

        monkeypatch.setattr(TopupRepository, "find_by_order_id", staticmethod(exhausted))
        monkeypatch.setattr("app.db.retry.settings.store_retry_attempts", 1)

        response = await admin_client.post("/api/admin/topups/retry", json={"orderId": ORDER_ID})

        assert response.status_code == 503
        assert response.json()["detail"]["retryAfter"] == 3600
        assert response.headers["retry-after"] == "3600"

    @pytest.mark.asyncio
    async def test_list_topups_filtered(self, admin_client: AsyncClient, store):
        """Transactions can be filtered by status."""
        await _pending_topup(store)

        pending = await admin_client.get("/api/admin/topups", params={"status": "pending"})
        settled = await admin_client.get("/api/admin/topups", params={"status": "settlement"})

        assert len(pending.json()) == 1
        assert settled.json() == []

    @pytest.mark.asyncio
    async def test_analytics(self, admin_client: AsyncClient, store, test_style):
        """Analytics returns totals and a zero-filled series."""
        await GenerationRepository.create(store, Generation(
            user_id="u1", style_id=test_style.id, style_name=test_style.name,
            created_at=datetime.now(timezone.utc)
        ))

        response = await admin_client.get("/api/admin/analytics", params={"period": "7days"})
        invalid = await admin_client.get("/api/admin/analytics", params={"period": "1year"})

        data = response.json()
        assert data["totals"]["generations"] == 1
        assert len(data["generationsPerDay"]) == 7
        assert data["generationsPerDay"][-1]["count"] == 1
        assert invalid.status_code == 400


class TestFavoriteEndpoints:
    """Tests for /me/favorites."""

    @pytest.mark.asyncio
    async def test_favorite_lifecycle(self, client: AsyncClient, test_style):
        """Add, check, list and remove a favorite."""
        added = await client.put(f"/api/me/favorites/{test_style.id}")
        assert added.status_code == 200
        assert added.json()["style"]["name"] == "Anime"

        status_response = await client.get(f"/api/me/favorites/{test_style.id}")
        assert status_response.json() == {"styleId": test_style.id, "isFavorite": True}

        assert (await client.get("/api/me/favorites/ids")).json() == [test_style.id]
        listed = await client.get("/api/me/favorites")
        assert [f["styleId"] for f in listed.json()] == [test_style.id]

        assert (await client.delete(f"/api/me/favorites/{test_style.id}")).status_code == 200
        assert (await client.get("/api/me/favorites")).json() == []

    @pytest.mark.asyncio
    async def test_favorite_unknown_style(self, client: AsyncClient):
        response = await client.put("/api/me/favorites/missing")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_favorites_require_auth(self, anonymous_client: AsyncClient):
        response = await anonymous_client.get("/api/me/favorites")

        assert response.status_code == 401


class TestFeedbackEndpoints:
    """Tests for feedback submission and the admin inbox."""

    @pytest.mark.asyncio
    async def test_submit_with_screenshot(self, client: AsyncClient, r2):
        """Multipart feedback is stored with the caller's uid and email."""
        response = await client.post(
            "/api/feedback/submit",
            data={"feedback": "The button is broken", "category": "bug", "isBetaTester": "true"},
            files={"screenshot": ("shot.png", PNG_BYTES, "image/png")}
        )

        assert response.status_code == 201
        data = response.json()
        assert data["userId"] == TEST_UID
        assert data["email"] == "test@example.com"
        assert data["category"] == "bug"
        assert data["isBetaTester"] is False
        assert data["screenshotPath"].startswith(f"{PUBLIC_BASE}/feedback/{TEST_UID}/")
        assert len(r2.objects) == 1

        mine = await client.get("/api/feedback/mine")
        assert [f["id"] for f in mine.json()] == [data["id"]]

    @pytest.mark.asyncio
    async def test_submit_rejects_non_image_screenshot(self, client: AsyncClient, r2):
        response = await client.post(
            "/api/feedback/submit",
            data={"feedback": "See attachment"},
            files={"screenshot": ("notes.txt", b"plain text", "text/plain")}
        )

        assert response.status_code == 400
        assert r2.objects == {}

    @pytest.mark.asyncio
    async def test_submit_requires_auth(self, anonymous_client: AsyncClient):
        response = await anonymous_client.post("/api/feedback/submit", data={"feedback": "hi"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_admin_inbox(self, admin_client: AsyncClient, store, image_host):
        """Admins list, read, annotate and delete feedback."""
        from app.services.feedback_service import FeedbackService

        feedback = await FeedbackService.submit(store, image_host, TEST_UID, None, "Slow generation")

        assert (await admin_client.get("/api/admin/feedback/unread-count")).json() == {"unread": 1}
        listed = await admin_client.get("/api/admin/feedback", params={"category": "general"})
        assert [f["id"] for f in listed.json()] == [feedback.id]

        read = await admin_client.post(f"/api/admin/feedback/{feedback.id}/read")
        assert read.json()["isRead"] is True
        assert (await admin_client.get("/api/admin/feedback/unread-count")).json() == {"unread": 0}

        updated = await admin_client.patch(
            f"/api/admin/feedback/{feedback.id}",
            json={"status": "reviewed", "adminNotes": "Looking into it"}
        )
        assert updated.json()["status"] == "reviewed"
        assert updated.json()["adminNotes"] == "Looking into it"

        assert (await admin_client.delete(f"/api/admin/feedback/{feedback.id}")).status_code == 204
        assert (await admin_client.get(f"/api/admin/feedback/{feedback.id}")).status_code == 404


class TestVisitorEndpoints:
    """Tests for visitor tracking."""

    @pytest.mark.asyncio
    async def test_track_records_request_details(self, anonymous_client: AsyncClient, store):
        """IP comes from the first x-forwarded-for hop."""
        response = await anonymous_client.post(
            "/api/visitor/track",
            json={"sessionId": "sess-1", "page": "/styles"},
            headers={
                "x-forwarded-for": "203.0.113.7, 10.0.0.1",
                "user-agent": "test-agent",
                "referer": "https://search.test/",
            }
        )

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        doc = await store.get(collections.VISITORS, "sess-1")
        assert doc["ipAddress"] == "203.0.113.7"
        assert doc["userAgent"] == "test-agent"
        assert doc["referrer"] == "https://search.test/"
        assert doc["isActive"] is True

    @pytest.mark.asyncio
    async def test_track_requires_session_and_page(self, anonymous_client: AsyncClient):
        response = await anonymous_client.post("/api/visitor/track", json={"page": "/"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_store_failure_is_not_fatal(self, anonymous_client: AsyncClient, monkeypatch):
        """Tracking answers ok with a warning when the store is down."""
        from app.services.visitor_service import VisitorService

        async def unavailable(*args, **kwargs):
            raise ResourceExhausted("quota")

        monkeypatch.setattr(VisitorService, "track", staticmethod(unavailable))

        response = await anonymous_client.post("/api/visitor/track", json={"sessionId": "s", "page": "/"})

        assert response.status_code == 200
        assert response.json()["ok"] is True
        assert "warning" in response.json()

    @pytest.mark.asyncio
    async def test_admin_stats(self, admin_client: AsyncClient):
        await admin_client.post("/api/visitor/track", json={"sessionId": "a", "page": "/"})
        await admin_client.post("/api/visitor/track", json={"sessionId": "b", "page": "/"})

        response = await admin_client.get("/api/admin/visitors/stats")

        assert response.json() == {"active": 2, "today": 2, "total": 2}


class TestBetaTesterEndpoints:
    """Tests for beta tester registration."""

    @pytest.mark.asyncio
    async def test_register_and_check(self, client: AsyncClient):
        """Registration grants free tokens once; a second attempt is 409."""
        before = await client.get("/api/beta-tester/check")
        assert before.json() == {"isRegistered": False, "isBetaTester": False, "registrationEnabled": True}

        registered = await client.post("/api/beta-tester/register")
        assert registered.status_code == 200
        assert registered.json() == {"ok": True, "freeTokensReceived": 1000, "tokens": 1025}

        after = await client.get("/api/beta-tester/check")
        assert after.json()["isBetaTester"] is True

        again = await client.post("/api/beta-tester/register")
        assert again.status_code == 409

    @pytest.mark.asyncio
    async def test_register_closed(self, client: AsyncClient, store):
        await store.set(collections.SETTINGS, "betaTester", {"registrationEnabled": False})

        response = await client.post("/api/beta-tester/register")

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_settings_and_list(self, admin_client: AsyncClient, store):
        """Admins change the bonus and see registrations."""
        from app.services.beta_tester_service import BetaTesterService

        saved = await admin_client.put(
            "/api/admin/settings/beta-tester",
            json={"freeTokens": 200, "registrationEnabled": True}
        )
        assert saved.json()["freeTokens"] == 200
        assert saved.json()["registrationEnabled"] is True

        await BetaTesterService.register(store, TEST_UID, "test@example.com")

        testers = await admin_client.get("/api/admin/beta-testers")
        assert [(t["userId"], t["freeTokensReceived"]) for t in testers.json()] == [(TEST_UID, 200)]
