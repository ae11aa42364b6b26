"""Tests for the chat HTTP API."""

import httpx
import pytest
import pytest_asyncio

from shared.models import LLMResponse, ToolInvocation, UserContext

SECRET = "test-secret"

SELLER = UserContext(user_id="7", username="ana", level=1)
OTHER_SELLER = UserContext(user_id="8", username="caio", level=1)


@pytest.fixture
def app_state(monkeypatch):
    """Wire the application globals with a mock provider."""
    from catalog import build_catalog
    from orchestrator import main
    from orchestrator.agent import ConversationOrchestrator
    from orchestrator.auth import AuthConfig, AuthMiddleware
    from orchestrator.conversation import InMemoryConversationStore
    from orchestrator.gateway import LLMGateway
    from orchestrator.limiter import RateLimiter
    from orchestrator.llm import MockLLMProvider

    provider = MockLLMProvider()
    gateway = LLMGateway(provider, limiter=RateLimiter(min_time=0, reservoir=50))
    catalog = build_catalog()
    auth = AuthMiddleware(AuthConfig(secret_key=SECRET))

    monkeypatch.setattr(main, "_settings", None)
    monkeypatch.setattr(main, "_auth_middleware", auth)
    monkeypatch.setattr(main, "_gateway", gateway)
    monkeypatch.setattr(main, "_catalog", catalog)
    monkeypatch.setattr(main, "_orchestrator", ConversationOrchestrator(
        gateway=gateway,
        catalog=catalog,
        store=InMemoryConversationStore(),
    ))

    return {"provider": provider, "auth": auth, "app": main.app}


@pytest_asyncio.fixture
async def client(app_state):
    transport = httpx.ASGITransport(app=app_state["app"])
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def bearer(app_state, user: UserContext) -> dict[str, str]:
    return {"Authorization": f"Bearer {app_state['auth'].create_token(user)}"}


class TestAuthentication:
    """Tests for token handling."""

    def test_token_round_trip(self):
        """Issued tokens carry the caller's id and level."""
        from orchestrator.auth import AuthConfig, AuthMiddleware

        auth = AuthMiddleware(AuthConfig(secret_key=SECRET))
        user = auth.get_user_context(auth.verify_token(auth.create_token(SELLER)))

        assert user == SELLER

    def test_invalid_token(self):
        """Tokens signed with another key are rejected."""
        from fastapi import HTTPException
        from orchestrator.auth import AuthConfig, AuthMiddleware

        token = AuthMiddleware(AuthConfig(secret_key="other")).create_token(SELLER)

        with pytest.raises(HTTPException) as exc_info:
            AuthMiddleware(AuthConfig(secret_key=SECRET)).verify_token(token)

        assert exc_info.value.status_code == 401

    def test_anonymous_when_auth_disabled(self):
        """With auth disabled every caller is the anonymous level-0 user."""
        from orchestrator.auth import AuthConfig, AuthMiddleware

        auth = AuthMiddleware(AuthConfig(secret_key=SECRET, require_auth=False))
        user = auth.authenticate(None)

        assert user.user_id == "anonymous"
        assert user.level == 0

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        """Requests without a token are rejected."""
        response = await client.post("/chat", json={"message": "Hi"})

        assert response.status_code == 401


class TestChatEndpoint:
    """Tests for POST /chat."""

    @pytest.mark.asyncio
    async def test_chat(self, client, app_state):
        """A chat request returns the assistant answer and the conversation id."""
        app_state["provider"].queue_responses(
            LLMResponse(
                tool_calls=[ToolInvocation(
                    id="call_1",
                    name="get_customer_churn_risk",
                    arguments='{"customer_id": 42}',
                )],
                finish_reason="tool_calls",
            ),
            LLMResponse(content="Customer 42 is at critical risk."),
        )

        response = await client.post(
            "/chat",
            json={"message": "Churn risk of 42?", "context": {"type": "CUSTOMER", "id": 42}},
            headers=bearer(app_state, SELLER),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Customer 42 is at critical risk."
        assert body["role"] == "assistant"
        assert body["conversation_id"]

    @pytest.mark.asyncio
    async def test_empty_message_rejected(self, client, app_state):
        """Empty messages fail validation."""
        response = await client.post(
            "/chat", json={"message": ""}, headers=bearer(app_state, SELLER)
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_foreign_conversation(self, client, app_state):
        """Continuing another user's conversation is a 404."""
        first = await client.post(
            "/chat", json={"message": "Hi"}, headers=bearer(app_state, SELLER)
        )

        response = await client.post(
            "/chat",
            json={"message": "Hi", "conversation_id": first.json()["conversation_id"]},
            headers=bearer(app_state, OTHER_SELLER),
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_rate_limited(self, client, app_state):
        """Provider throttling is reported as 429."""
        from orchestrator.llm import ProviderRateLimitError

        app_state["provider"].error = ProviderRateLimitError("429")

        response = await client.post(
            "/chat", json={"message": "Hi"}, headers=bearer(app_state, SELLER)
        )

        assert response.status_code == 429
        assert response.json()["detail"] == "Rate limit exceeded. Please try again later."

    @pytest.mark.asyncio
    async def test_provider_connection_failure(self, client, app_state):
        """An unreachable provider is reported as 503, not 500."""
        import openai

        app_state["provider"].error = openai.APIConnectionError(
            request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        )

        response = await client.post(
            "/chat", json={"message": "Hi"}, headers=bearer(app_state, SELLER)
        )

        assert response.status_code == 503
        assert response.json()["detail"] == "The language model is unavailable. Please try again later."

    @pytest.mark.asyncio
    async def test_provider_timeout_from_sdk(self, client, app_state):
        """SDK-level timeouts are also a 503."""
        import openai

        app_state["provider"].error = openai.APITimeoutError(
            request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        )

        response = await client.post(
            "/chat", json={"message": "Hi"}, headers=bearer(app_state, SELLER)
        )

        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_loop_exhausted(self, client, app_state):
        """A model that never stops calling tools yields a 500."""
        app_state["provider"].queue_responses(*[
            LLMResponse(
                tool_calls=[ToolInvocation(id=f"call_{i}", name="check_sales_deviation")],
                finish_reason="tool_calls",
            )
            for i in range(5)
        ])

        response = await client.post(
            "/chat", json={"message": "Loop"}, headers=bearer(app_state, SELLER)
        )

        assert response.status_code == 500
        assert response.json()["detail"] == "AI loop limit exceeded without final response"


class TestConversationEndpoints:
    """Tests for the conversation history endpoints."""

    @pytest.mark.asyncio
    async def test_list_and_get(self, client, app_state):
        """Users list their conversations and read their messages."""
        headers = bearer(app_state, SELLER)
        chat = await client.post("/chat", json={"message": "Hello there"}, headers=headers)
        conversation_id = chat.json()["conversation_id"]

        listing = await client.get("/conversations", headers=headers)
        assert listing.status_code == 200
        assert [c["id"] for c in listing.json()["conversations"]] == [conversation_id]

        history = await client.get(f"/conversations/{conversation_id}", headers=headers)
        assert history.status_code == 200
        messages = history.json()["messages"]
        assert [m["role"] for m in messages] == ["user", "assistant"]
        assert messages[0]["content"] == "Hello there"

    @pytest.mark.asyncio
    async def test_get_foreign_conversation(self, client, app_state):
        """Another user's conversation is not found."""
        chat = await client.post(
            "/chat", json={"message": "Private"}, headers=bearer(app_state, SELLER)
        )

        response = await client.get(
            f"/conversations/{chat.json()['conversation_id']}",
            headers=bearer(app_state, OTHER_SELLER),
        )

        assert response.status_code == 404


class TestSystemEndpoints:
    """Tests for /health and /tools."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        """Health reports limiter state and tool count."""
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["tool_count"] == 18
        assert body["limiter"]["reservoir"] == 50

    @pytest.mark.asyncio
    async def test_tools(self, client, app_state):
        """Tools can be listed and filtered by group."""
        headers = bearer(app_state, SELLER)

        everything = await client.get("/tools", headers=headers)
        customers = await client.get("/tools", params={"group": "customers"}, headers=headers)

        assert everything.json()["count"] == 18
        assert {t["name"] for t in customers.json()["tools"]} == {
            "search_customers",
            "get_customer_details",
        }
