"""
Unit tests for the feature data services.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.errors import PermissionDeniedError, ServiceUnavailableError
from service_feedbacks.app.ai import ModerationClient, ModerationResult, SummarizationClient
from service_feedbacks.app.catalog import ProfessionalSector, User
from service_feedbacks.app.rules.models import Principal
from service_feedbacks.app.rules.policy import create_policy_engine
from service_feedbacks.app.services import (
    GUEST_DISPLAY_NAME, ChatDataService, FeedbackDataService,
    RecommendationDataService, UserDataService, display_name
)
from service_feedbacks.app.store import DocumentStore

U1 = Principal.user("u1")
U2 = Principal.user("u2")
GUEST = Principal.anonymous("guest-1")
NOBODY = Principal.unauthenticated()


@pytest.fixture
def store():
    return DocumentStore(create_policy_engine())


class TestUserDataService:
    """Test cases for UserDataService."""

    @pytest.fixture
    def users(self, store):
        return UserDataService(store)

    @pytest.mark.asyncio
    async def test_missing_profile(self, users):
        assert await users.get_user(U1, "u1") is None

    @pytest.mark.asyncio
    async def test_save_and_read(self, users):
        await users.save_user(U1, User(id="u1", name="Test", email="u1@x.com", professional_sector="Tecnología"))

        user = await users.get_user(U1, "u1")

        assert user.name == "Test"
        assert user.professional_sector == ProfessionalSector.TECNOLOGIA

    @pytest.mark.asyncio
    async def test_missing_sector_stored_as_null(self, users, store):
        await users.save_user(U1, User(id="u1", name="Test", email="u1@x.com"))

        snapshot = await store.get(U1, "users", "u1")
        assert snapshot.data == {"name": "Test", "email": "u1@x.com", "professionalSector": None}

    @pytest.mark.asyncio
    async def test_save_merges_existing_fields(self, users, store):
        await store.seed("users", "u1", {"name": "Test", "email": "u1@x.com", "professionalSector": None, "photo": "p.png"})

        await users.save_user(U1, User(id="u1", name="Nuevo", email="u1@x.com", professional_sector="Legal"))

        snapshot = await store.get(U1, "users", "u1")
        assert snapshot.get("photo") == "p.png"
        assert snapshot.get("professionalSector") == "Legal"

    @pytest.mark.asyncio
    async def test_cannot_save_someone_elses_profile(self, users):
        with pytest.raises(PermissionDeniedError):
            await users.save_user(U1, User(id="u2", name="Test", email="u2@x.com"))

    @pytest.mark.asyncio
    async def test_guest_cannot_register(self, users):
        with pytest.raises(PermissionDeniedError):
            await users.save_user(GUEST, User(id="guest-1", name="Invitado", email="g@x.com"))

    @pytest.mark.asyncio
    async def test_update_user(self, users):
        await users.save_user(U1, User(id="u1", name="Test", email="u1@x.com"))

        user = await users.update_user(U1, "u1", {"name": "Otro"})

        assert user.name == "Otro"

    def test_display_names(self):
        user = User(id="u1", name="Test", email="u1@x.com")

        assert display_name(U1, user) == "Test"
        assert display_name(GUEST) == GUEST_DISPLAY_NAME
        assert display_name(NOBODY) == GUEST_DISPLAY_NAME


class TestRecommendationDataService:
    """Test cases for RecommendationDataService."""

    @pytest.fixture
    def recommendations(self, store):
        return RecommendationDataService(store)

    @pytest.fixture
    def author(self):
        return User(id="u1", name="Ana", email="u1@x.com", professional_sector="Salud")

    @pytest.mark.asyncio
    async def test_author_snapshot(self, recommendations, author, store):
        rec_id = await recommendations.add_recommendation(U1, author, "Gran profesional del sector.", "Salud")

        # Later profile edits do not reach existing recommendations.
        await store.seed("users", "u1", {"name": "Ana María", "email": "u1@x.com", "professionalSector": "Legal"})
        recommendation = await recommendations.get_recommendation(NOBODY, rec_id)

        assert recommendation.user_id == "u1"
        assert recommendation.user_name == "Ana"
        assert recommendation.user_sector == ProfessionalSector.SALUD
        assert recommendation.created_at is not None

    @pytest.mark.asyncio
    async def test_unknown_sector_denied(self, recommendations, author):
        with pytest.raises(PermissionDeniedError):
            await recommendations.add_recommendation(U1, author, "Gran profesional del sector.", "NotASector")

    @pytest.mark.asyncio
    async def test_newest_first(self, recommendations, author):
        first = await recommendations.add_recommendation(U1, author, "Primera recomendación.", "Salud")
        second = await recommendations.add_recommendation(U1, author, "Segunda recomendación.", "Legal")

        listed = await recommendations.list_recommendations(NOBODY)

        assert [r.id for r in listed] == [second, first]
        assert [r.id for r in await recommendations.list_recommendations(GUEST, limit=1)] == [second]

    @pytest.mark.asyncio
    async def test_missing_recommendation(self, recommendations):
        assert await recommendations.get_recommendation(NOBODY, "nope") is None

    @pytest.mark.asyncio
    async def test_partial_documents_are_skipped(self, recommendations, author, store):
        posted = await recommendations.add_recommendation(U1, author, "Gran profesional del sector.", "Salud")
        partial = await store.add(U1, "recommendations", {
            "userId": "u1", "sector": "Salud", "createdAt": "2024-01-01T00:00:00Z"
        })

        listed = await recommendations.list_recommendations(NOBODY)

        assert [r.id for r in listed] == [posted]
        assert await recommendations.get_recommendation(NOBODY, partial) is None


    @pytest.mark.asyncio
    async def test_only_author_updates(self, recommendations, author):
        rec_id = await recommendations.add_recommendation(U1, author, "Gran profesional del sector.", "Salud")

        updated = await recommendations.update_recommendation(U1, rec_id, {"text": "Texto corregido."})
        assert updated.text == "Texto corregido."

        with pytest.raises(PermissionDeniedError):
            await recommendations.update_recommendation(U2, rec_id, {"text": "Ajeno."})


class TestChatDataService:
    """Test cases for ChatDataService."""

    @pytest.fixture
    def moderation(self):
        """Moderation collaborator that accepts everything."""
        moderation = MagicMock(spec=ModerationClient)
        moderation.moderate = AsyncMock(
            side_effect=lambda text: ModerationResult(is_appropriate=True, moderated_text=text)
        )
        return moderation

    @pytest.fixture
    def chat(self, store, moderation):
        return ChatDataService(store, moderation)

    @pytest.mark.asyncio
    async def test_appropriate_message(self, chat, moderation):
        message_id = await chat.add_message(U1, "Ana", "Hola equipo")

        messages = await chat.list_messages(U1)

        moderation.moderate.assert_awaited_once_with("Hola equipo")
        assert [m.id for m in messages] == [message_id]
        assert messages[0].text == "Hola equipo"
        assert not messages[0].is_moderated
        assert messages[0].user_name == "Ana"

    @pytest.mark.asyncio
    async def test_censored_message(self, chat, moderation):
        moderation.moderate.side_effect = None
        moderation.moderate.return_value = ModerationResult(is_appropriate=False, moderated_text="eres un ****")

        await chat.add_message(U1, "Ana", "eres un tonto")
        message = (await chat.list_messages(U1))[0]

        assert message.text == "eres un ****"
        assert message.is_moderated

    @pytest.mark.asyncio
    async def test_moderation_failure_writes_nothing(self, chat, moderation, store):
        moderation.moderate.side_effect = ServiceUnavailableError("moderateChatFlow", "flow server unreachable")

        with pytest.raises(ServiceUnavailableError):
            await chat.add_message(U1, "Ana", "Hola equipo")

        assert await chat.list_messages(U1) == []
        assert store.get_store_stats()["collections"] == {}

    @pytest.mark.asyncio
    async def test_guest_cannot_post(self, chat, moderation):
        with pytest.raises(PermissionDeniedError):
            await chat.add_message(GUEST, GUEST_DISPLAY_NAME, "Hola")

        moderation.moderate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_partial_messages_are_skipped(self, chat, store):
        kept = await chat.add_message(U1, "Ana", "Hola equipo")
        await store.add(U1, "chatMessages", {"userId": "u1", "createdAt": "2024-01-01"})

        assert [m.id for m in await chat.list_messages(U1)] == [kept]

    @pytest.mark.asyncio
    async def test_guest_cannot_read(self, chat):
        with pytest.raises(PermissionDeniedError):
            await chat.list_messages(GUEST)
        with pytest.raises(PermissionDeniedError):
            await chat.stream_messages(GUEST)

    @pytest.mark.asyncio
    async def test_oldest_first(self, chat):
        await chat.add_message(U1, "Ana", "uno")
        await chat.add_message(U2, "Luis", "dos")

        assert [m.text for m in await chat.list_messages(U2)] == ["uno", "dos"]

    @pytest.mark.asyncio
    async def test_stream(self, chat, store):
        await chat.add_message(U1, "Ana", "uno")
        stream = await chat.stream_messages(U2)

        first = await stream.__anext__()
        await chat.add_message(U2, "Luis", "dos")
        second = await stream.__anext__()
        await stream.aclose()

        assert [m.text for m in first] == ["uno"]
        assert [m.text for m in second] == ["uno", "dos"]
        assert store.subscriptions.get_subscription_count() == 0


class TestFeedbackDataService:
    """Test cases for FeedbackDataService."""

    @pytest.fixture
    def summarizer(self):
        summarizer = MagicMock(spec=SummarizationClient)
        summarizer.summarize = AsyncMock(return_value="Resumen breve")
        return summarizer

    @pytest.fixture
    def feedback(self, store, summarizer):
        return FeedbackDataService(store, summarizer)

    @pytest.mark.asyncio
    async def test_submit_as_guest(self, feedback, summarizer):
        log = await feedback.submit_feedback(GUEST, "La app me gusta mucho.")

        stored = await feedback.get_feedback_log(GUEST, log.id)

        summarizer.summarize.assert_awaited_once_with("La app me gusta mucho.")
        assert stored.original_feedback_text == "La app me gusta mucho."
        assert stored.summary_text == "Resumen breve"
        assert stored.user_id == "guest-1"
        assert stored.created_at is not None

    @pytest.mark.asyncio
    async def test_unauthenticated_submit_denied(self, feedback, summarizer):
        with pytest.raises(PermissionDeniedError):
            await feedback.submit_feedback(NOBODY, "Hola")

        summarizer.summarize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_feedback_denied_before_summarizing(self, feedback, summarizer):
        with pytest.raises(PermissionDeniedError):
            await feedback.submit_feedback(GUEST, "")

        summarizer.summarize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_summarizer_failure_writes_nothing(self, feedback, summarizer):
        summarizer.summarize.side_effect = ServiceUnavailableError("summarizeFeedbackFlow")

        with pytest.raises(ServiceUnavailableError):
            await feedback.submit_feedback(U1, "Hola")

        assert await feedback.list_feedback_logs(U1) == []

    @pytest.mark.asyncio
    async def test_add_log_with_empty_text_denied(self, feedback):
        with pytest.raises(PermissionDeniedError):
            await feedback.add_feedback_log(U1, "", "")

    @pytest.mark.asyncio
    async def test_newest_first(self, feedback):
        first = await feedback.add_feedback_log(U1, "uno", "1")
        second = await feedback.add_feedback_log(GUEST, "dos", "2")

        logs = await feedback.list_feedback_logs(GUEST)

        assert [log.id for log in logs] == [second, first]
        assert await feedback.get_feedback_log(U1, "nope") is None
