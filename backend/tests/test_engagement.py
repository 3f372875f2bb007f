"""
Tests for favorites, feedback, visitor tracking and the beta tester program.
"""
from datetime import datetime, timedelta, timezone

import pytest

from app.db import collections
from app.exceptions import AlreadyBetaTester, BetaRegistrationClosed, FeedbackNotFound, StyleNotFound
from app.models.feedback import FeedbackCategory, FeedbackStatus
from app.models.settings import BetaTesterSettings
from app.repositories.style_repository import StyleRepository
from app.services.beta_tester_service import BetaTesterService
from app.services.favorite_service import FavoriteService
from app.services.feedback_service import MAX_SCREENSHOT_BYTES, FeedbackService
from app.services.history_service import GenerationHistoryService
from app.services.settings_service import SettingsService
from app.services.token_service import TokenService
from app.services.visitor_service import VisitorService

from conftest import PNG_BYTES, PUBLIC_BASE, TEST_UID

NOW = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)


class TestFavoriteService:
    """Tests for favorite styles."""

    @pytest.mark.asyncio
    async def test_add_stores_style_copy(self, store, test_style):
        """The favorite keeps a copy of the style."""
        favorite = await FavoriteService.add_favorite(store, TEST_UID, test_style.id)

        assert favorite.id == f"{TEST_UID}_{test_style.id}"
        assert favorite.style.name == "Anime"
        assert await FavoriteService.is_favorite(store, TEST_UID, test_style.id)
        assert not await FavoriteService.is_favorite(store, "someone-else", test_style.id)

    @pytest.mark.asyncio
    async def test_add_unknown_style(self, store):
        """Favoriting a missing style raises StyleNotFound."""
        with pytest.raises(StyleNotFound):
            await FavoriteService.add_favorite(store, TEST_UID, "missing")

    @pytest.mark.asyncio
    async def test_add_twice_keeps_one(self, store, test_style):
        """Repeated adds do not duplicate the favorite."""
        await FavoriteService.add_favorite(store, TEST_UID, test_style.id)
        await FavoriteService.add_favorite(store, TEST_UID, test_style.id)

        assert await FavoriteService.favorite_style_ids(store, TEST_UID) == [test_style.id]

    @pytest.mark.asyncio
    async def test_copy_survives_style_deletion(self, store, test_style):
        """Favorites still list after the style leaves the catalog."""
        await FavoriteService.add_favorite(store, TEST_UID, test_style.id)
        await StyleRepository.delete(store, test_style.id)

        favorites = await FavoriteService.list_favorites(store, TEST_UID)

        assert [f.style.prompt for f in favorites] == [test_style.prompt]

    @pytest.mark.asyncio
    async def test_remove(self, store, test_style):
        await FavoriteService.add_favorite(store, TEST_UID, test_style.id)
        await FavoriteService.remove_favorite(store, TEST_UID, test_style.id)

        assert await FavoriteService.list_favorites(store, TEST_UID) == []

    @pytest.mark.asyncio
    async def test_purge_user_removes_favorites(self, store, image_host, test_style):
        """Purging a user deletes their favorites and nobody else's."""
        await FavoriteService.add_favorite(store, TEST_UID, test_style.id)
        await FavoriteService.add_favorite(store, "other", test_style.id)

        await GenerationHistoryService.purge_user(store, image_host, TEST_UID)

        assert await FavoriteService.list_favorites(store, TEST_UID) == []
        assert len(await FavoriteService.list_favorites(store, "other")) == 1


class TestFeedbackService:
    """Tests for feedback submission and the admin inbox."""

    @pytest.mark.asyncio
    async def test_submit_without_screenshot(self, store, image_host, r2):
        """Feedback starts pending and unread."""
        feedback = await FeedbackService.submit(
            store, image_host, TEST_UID, "test@example.com", "  Love it  ", category=FeedbackCategory.FEATURE
        )

        assert feedback.id.startswith(f"{TEST_UID}_")
        assert feedback.feedback == "Love it"
        assert feedback.category == "feature"
        assert feedback.status == "pending"
        assert feedback.is_read is False
        assert feedback.is_beta_tester is False
        assert feedback.screenshot_path is None
        assert r2.objects == {}

    @pytest.mark.asyncio
    async def test_submit_with_screenshot(self, store, image_host, r2):
        """Screenshots are stored under feedback/{userId}/ without watermark."""
        feedback = await FeedbackService.submit(
            store, image_host, TEST_UID, None, "Broken button",
            category=FeedbackCategory.BUG, screenshot=PNG_BYTES, screenshot_type="image/png"
        )

        assert feedback.screenshot_path.startswith(f"{PUBLIC_BASE}/feedback/{TEST_UID}/")
        key = feedback.screenshot_path[len(PUBLIC_BASE) + 1:]
        assert r2.objects[key] == PNG_BYTES
        assert r2.metadata[key] == {"watermark": "0"}

    @pytest.mark.asyncio
    async def test_rejects_bad_input(self, store, image_host, r2):
        """Blank text, non-image and oversized screenshots are refused."""
        with pytest.raises(ValueError):
            await FeedbackService.submit(store, image_host, TEST_UID, None, "   ")
        with pytest.raises(ValueError):
            await FeedbackService.submit(
                store, image_host, TEST_UID, None, "x", screenshot=b"<html></html>", screenshot_type="text/html"
            )
        with pytest.raises(ValueError):
            await FeedbackService.submit(
                store, image_host, TEST_UID, None, "x",
                screenshot=PNG_BYTES + b"\x00" * MAX_SCREENSHOT_BYTES, screenshot_type="image/png"
            )

        assert r2.objects == {}
        assert await FeedbackService.list_feedback(store) == []

    @pytest.mark.asyncio
    async def test_beta_flag_looked_up(self, store, image_host):
        """is_beta_tester comes from the registration, not the caller."""
        await BetaTesterService.register(store, TEST_UID, "test@example.com")

        feedback = await FeedbackService.submit(store, image_host, TEST_UID, "test@example.com", "Beta notes")

        assert feedback.is_beta_tester is True

    @pytest.mark.asyncio
    async def test_list_filters(self, store, image_host):
        """Feedback can be listed by category and by user."""
        await FeedbackService.submit(store, image_host, TEST_UID, None, "bug", category=FeedbackCategory.BUG)
        await FeedbackService.submit(store, image_host, "other", None, "idea", category=FeedbackCategory.FEATURE)

        bugs = await FeedbackService.list_feedback(store, category=FeedbackCategory.BUG)
        mine = await FeedbackService.list_feedback(store, user_id=TEST_UID)

        assert [f.feedback for f in bugs] == ["bug"]
        assert [f.feedback for f in mine] == ["bug"]
        assert len(await FeedbackService.list_feedback(store)) == 2

    @pytest.mark.asyncio
    async def test_mark_read_and_unread_count(self, store, image_host):
        first = await FeedbackService.submit(store, image_host, TEST_UID, None, "one")
        await FeedbackService.submit(store, image_host, "other", None, "two")
        assert await FeedbackService.unread_count(store) == 2

        read = await FeedbackService.mark_read(store, first.id)

        assert read.is_read is True
        assert read.read_at is not None
        assert await FeedbackService.unread_count(store) == 1

    @pytest.mark.asyncio
    async def test_update_status_and_notes(self, store, image_host):
        feedback = await FeedbackService.submit(store, image_host, TEST_UID, None, "one")

        updated = await FeedbackService.update_feedback(
            store, feedback.id, status=FeedbackStatus.RESOLVED, admin_notes="Fixed in 1.2"
        )

        assert updated.status == "resolved"
        assert updated.admin_notes == "Fixed in 1.2"

    @pytest.mark.asyncio
    async def test_delete_removes_screenshot(self, store, image_host, r2):
        feedback = await FeedbackService.submit(
            store, image_host, TEST_UID, None, "see image", screenshot=PNG_BYTES, screenshot_type="image/png"
        )

        await FeedbackService.delete_feedback(store, image_host, feedback.id)

        assert r2.objects == {}
        with pytest.raises(FeedbackNotFound):
            await FeedbackService.get_feedback(store, feedback.id)


class TestVisitorService:
    """Tests for visitor tracking and counts."""

    @pytest.mark.asyncio
    async def test_created_at_only_on_first_ping(self, store):
        """Later pings move lastSeenAt and page but keep createdAt."""
        await VisitorService.track(store, "s1", "/", now=NOW)
        await VisitorService.track(store, "s1", "/pricing", user_id=TEST_UID, now=NOW + timedelta(minutes=2))

        doc = await store.get(collections.VISITORS, "s1")
        assert doc["createdAt"] == NOW
        assert doc["lastSeenAt"] == NOW + timedelta(minutes=2)
        assert doc["page"] == "/pricing"
        assert doc["userId"] == TEST_UID

    @pytest.mark.asyncio
    async def test_stats(self, store):
        """Active is the last 5 minutes, today starts at midnight UTC."""
        await VisitorService.track(store, "recent", "/", now=NOW - timedelta(minutes=1))
        await VisitorService.track(store, "idle", "/", now=NOW - timedelta(minutes=10))
        await VisitorService.track(store, "yesterday", "/", now=NOW - timedelta(days=1))

        stats = await VisitorService.stats(store, now=NOW)

        assert (stats.active, stats.today, stats.total) == (1, 2, 3)

    @pytest.mark.asyncio
    async def test_returning_visitor_counts_active(self, store):
        """A session first seen yesterday is active again after a new ping."""
        await VisitorService.track(store, "s1", "/", now=NOW - timedelta(days=1))
        await VisitorService.track(store, "s1", "/", now=NOW)

        stats = await VisitorService.stats(store, now=NOW)

        assert (stats.active, stats.today, stats.total) == (1, 0, 1)


class TestBetaTesterService:
    """Tests for beta tester registration."""

    @pytest.mark.asyncio
    async def test_register_credits_free_tokens(self, store, funded_user):
        """Registration adds freeTokens on top of the current balance."""
        tester = await BetaTesterService.register(store, funded_user, "test@example.com")

        assert tester.free_tokens_received == 1000
        assert await TokenService.get_balance(store, funded_user) == 1025
        assert await BetaTesterService.is_beta_tester(store, funded_user)

    @pytest.mark.asyncio
    async def test_register_without_token_account(self, store):
        """Users without a token document get one holding the bonus."""
        await SettingsService.save_beta_tester_settings(store, BetaTesterSettings(free_tokens=50))

        await BetaTesterService.register(store, "new-user", "new@example.com")

        assert await TokenService.get_balance(store, "new-user") == 50

    @pytest.mark.asyncio
    async def test_second_registration_refused(self, store, funded_user):
        """The bonus is granted once."""
        await BetaTesterService.register(store, funded_user, "test@example.com")

        with pytest.raises(AlreadyBetaTester):
            await BetaTesterService.register(store, funded_user, "test@example.com")

        assert await TokenService.get_balance(store, funded_user) == 1025

    @pytest.mark.asyncio
    async def test_registration_closed(self, store, funded_user):
        await SettingsService.save_beta_tester_settings(store, BetaTesterSettings(registration_enabled=False))

        with pytest.raises(BetaRegistrationClosed):
            await BetaTesterService.register(store, funded_user, "test@example.com")

        assert await TokenService.get_balance(store, funded_user) == 25

    @pytest.mark.asyncio
    async def test_email_required(self, store, funded_user):
        with pytest.raises(ValueError):
            await BetaTesterService.register(store, funded_user, None)

        assert not await BetaTesterService.is_registered(store, funded_user)

    @pytest.mark.asyncio
    async def test_closing_program_hides_beta_status(self, store, funded_user):
        """Registered users stop counting as beta testers while registration is off."""
        await BetaTesterService.register(store, funded_user, "test@example.com")
        await SettingsService.save_beta_tester_settings(store, BetaTesterSettings(registration_enabled=False))

        assert await BetaTesterService.is_registered(store, funded_user)
        assert not await BetaTesterService.is_beta_tester(store, funded_user)
