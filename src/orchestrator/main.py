"""Orchestrator - FastAPI Application.

The Orchestrator provides:
- Chat API for the frontend
- Conversation history per user
- The rate-limited LLM gateway and the tool catalog behind it
"""

from contextlib import asynccontextmanager
from typing import Any, Optional

import openai
from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from shared.config import Settings, get_settings
from shared.logging import get_logger, setup_logging
from shared.models import Conversation, UserContext
from catalog import ToolCatalog, build_catalog
from orchestrator.agent import (
    ChatContext,
    ConversationNotFoundError,
    ConversationOrchestrator,
    LoopExhaustedError,
)
from orchestrator.auth import AuthConfig, AuthMiddleware
from orchestrator.conversation import InMemoryConversationStore
from orchestrator.gateway import GatewayError, LLMGateway, RateLimitExceededError
from orchestrator.llm import create_llm_provider

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)


# Request/Response Models
class ChatRequest(BaseModel):
    """Chat request from frontend."""
    message: str = Field(..., min_length=1, description="User message")
    conversation_id: Optional[str] = Field(default=None, description="Existing conversation ID")
    context: Optional[ChatContext] = Field(default=None, description="What the conversation is about")


class ChatResponse(BaseModel):
    """Chat response to frontend."""
    conversation_id: str
    message: str
    role: str = "assistant"


class ConversationListResponse(BaseModel):
    """List of conversations."""
    conversations: list[Conversation]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    tool_count: int
    limiter: dict[str, Any]
    cache: dict[str, Any]


# Global instances
_settings: Optional[Settings] = None
_auth_middleware: Optional[AuthMiddleware] = None
_gateway: Optional[LLMGateway] = None
_catalog: Optional[ToolCatalog] = None
_orchestrator: Optional[ConversationOrchestrator] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    global _settings, _auth_middleware, _gateway, _catalog, _orchestrator

    # Startup
    _settings = get_settings()
    setup_logging(_settings.log_level, json_output=_settings.environment == "production")

    logger.info("Starting Orchestrator")

    _auth_middleware = AuthMiddleware(AuthConfig(
        secret_key=_settings.orchestrator.secret_key,
        token_expire_minutes=_settings.orchestrator.token_expire_minutes,
        require_auth=_settings.orchestrator.require_auth,
    ))

    provider = create_llm_provider(_settings.llm)
    _gateway = LLMGateway.from_settings(provider, _settings.llm, _settings.gateway)
    _catalog = build_catalog()

    _orchestrator = ConversationOrchestrator(
        gateway=_gateway,
        catalog=_catalog,
        store=InMemoryConversationStore(),
        max_turns=_settings.orchestrator.max_turns,
    )

    logger.info(
        "Orchestrator started",
        provider=_settings.llm.provider,
        model=_settings.llm.model,
        tool_count=len(_catalog)
    )

    yield

    # Shutdown
    logger.info("Shutting down Orchestrator")


# Create FastAPI app
app = FastAPI(
    title="Sales Assistant Orchestrator",
    description="Tool-augmented chat over the sales analytics services",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _require_orchestrator() -> ConversationOrchestrator:
    if _orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Orchestrator not initialized"
        )
    return _orchestrator


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> UserContext:
    """Dependency to get current authenticated user."""
    if _auth_middleware is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server not initialized"
        )

    return _auth_middleware.authenticate(credentials.credentials if credentials else None)


@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """Health check endpoint."""
    if _gateway is None or _catalog is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Gateway not initialized"
        )

    stats = _gateway.get_stats()
    reservoir = stats["limiter"]["reservoir"]

    return HealthResponse(
        status="degraded" if reservoir == 0 else "healthy",
        tool_count=len(_catalog),
        limiter=stats["limiter"],
        cache=stats["cache"],
    )


@app.post("/chat", response_model=ChatResponse, tags=["Chat"])
async def chat(
    request: ChatRequest,
    user: UserContext = Depends(get_current_user)
):
    """
    Process a chat message.

    This is the main endpoint for the chat UI.
    """
    orchestrator = _require_orchestrator()

    try:
        result = await orchestrator.send_message(
            request.message,
            user,
            conversation_id=request.conversation_id,
            context=request.context
        )

    except ConversationNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Conversation not found"
        )
    except RateLimitExceededError as e:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=str(e)
        )
    except (GatewayError, openai.APIError) as e:
        logger.error("LLM gateway failure", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="The language model is unavailable. Please try again later."
        )
    except LoopExhaustedError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
    except Exception as e:
        logger.error("Chat processing failed", error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process message"
        )

    return ChatResponse(conversation_id=result.conversation_id, message=result.message)


@app.get("/conversations", response_model=ConversationListResponse, tags=["Conversations"])
async def list_conversations(
    user: UserContext = Depends(get_current_user)
):
    """List user's conversations, most recently updated first."""
    orchestrator = _require_orchestrator()

    limit = _settings.orchestrator.conversation_list_limit if _settings else 20
    conversations = await orchestrator.list_conversations(user, limit=limit)
    return ConversationListResponse(conversations=conversations)


@app.get("/conversations/{conversation_id}", tags=["Conversations"])
async def get_conversation(
    conversation_id: str,
    user: UserContext = Depends(get_current_user)
):
    """Get conversation history."""
    orchestrator = _require_orchestrator()

    try:
        messages = await orchestrator.get_messages(conversation_id, user)
    except ConversationNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Conversation not found"
        )

    return {
        "conversation_id": conversation_id,
        "messages": [m.model_dump(mode="json") for m in messages],
    }


@app.get("/tools", tags=["Tools"])
async def list_tools(
    group: Optional[str] = None,
    user: UserContext = Depends(get_current_user)
):
    """List the tools offered to the model."""
    if _catalog is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Catalog not initialized"
        )

    tools = [t.model_dump() for t in _catalog.list_tools(group)]
    return {"tools": tools, "count": len(tools)}


def main():
    """Run the Orchestrator server."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "orchestrator.main:app",
        host=settings.orchestrator.host,
        port=settings.orchestrator.port,
        reload=settings.environment == "development"
    )


if __name__ == "__main__":
    main()
