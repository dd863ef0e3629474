from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Literal, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from chatgate.bootstrap import AppContext, build_context
from chatgate.core.errors import (
    ConversationNotFound,
    MalformedInput,
    PersistenceError,
    ProviderNotFound,
    UnsupportedProviderKind,
    UpstreamError,
)
from chatgate.core.messages import ChatMessage
from chatgate.providers.catalog import VENDOR_NAMES, available_models
from chatgate.storage.conversations import ConversationStore
from chatgate.web.sse import SSE_HEADERS, sse_body

logger = logging.getLogger(__name__)


class MessageIn(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: List[MessageIn] = Field(default_factory=list)
    model: Optional[str] = None
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")

    def chat_messages(self) -> List[ChatMessage]:
        return [ChatMessage(role=m.role, content=m.content) for m in self.messages]


class ConversationIn(BaseModel):
    title: Optional[str] = None
    model: Optional[str] = None


class ConversationMessageIn(BaseModel):
    role: Optional[str] = None
    content: Optional[str] = None


def _error(status: int, message: str, headers=None, **extra) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status, headers=headers)


def create_app(context: AppContext) -> FastAPI:
    app = FastAPI(title="chatgate")
    app.state.ctx = context
    gateway = context.gateway
    registry = context.registry

    # ----- error mapping: every error body is {"error": ...} -----

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(_request: Request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
            for err in exc.errors()
        )
        return _error(400, f"Invalid request: {problems}")

    @app.exception_handler(MalformedInput)
    async def _malformed(_request: Request, exc: MalformedInput):
        return _error(400, str(exc))

    @app.exception_handler(ProviderNotFound)
    async def _unknown_model(_request: Request, exc: ProviderNotFound):
        return _error(400, str(exc))

    @app.exception_handler(UnsupportedProviderKind)
    async def _unknown_kind(_request: Request, exc: UnsupportedProviderKind):
        return _error(400, str(exc), supportedKinds=sorted(VENDOR_NAMES))

    @app.exception_handler(UpstreamError)
    async def _upstream(_request: Request, exc: UpstreamError):
        logger.error("Upstream failure: %s", exc)
        return _error(500, "Internal Server Error", details=str(exc), availableModels=registry.list_aliases())

    def _store() -> ConversationStore:
        if context.store is None:
            raise HTTPException(status_code=503, detail="Conversation storage not configured")
        return context.store

    # ----- chat -----

    @app.post("/api/chat")
    async def api_chat(req: ChatRequest):
        prepared = gateway.prepare(req.chat_messages(), req.model, req.conversation_id)
        reply = await gateway.send(prepared)
        return JSONResponse({"reply": reply.reply, "model": reply.model, "provider": reply.provider})

    @app.post("/api/chat-stream")
    async def api_chat_stream(req: ChatRequest):
        # Validation errors surface here, before any bytes are committed
        prepared = gateway.prepare(req.chat_messages(), req.model, req.conversation_id)
        logger.info("Streaming request for model %s (%s)", prepared.alias, prepared.provider.name)
        return StreamingResponse(
            sse_body(gateway.stream(prepared)),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    @app.get("/api/models")
    def api_models():
        aliases = set(registry.list_aliases())
        return JSONResponse({
            "providerStatus": context.provider_status,
            "availableModels": available_models(registry, context.catalog),
            "recommendations": {k: v for k, v in context.recommendations.items() if v in aliases},
            "defaultModel": gateway.default_model,
        })

    # ----- conversations -----

    @app.get("/api/conversations")
    def list_conversations():
        return JSONResponse({"conversations": _store().list_conversations()})

    @app.post("/api/conversations", status_code=201)
    def create_conversation(body: ConversationIn):
        provider = None
        if body.model:
            try:
                provider = VENDOR_NAMES.get(registry.config_for(body.model).kind)
            except ProviderNotFound:
                pass
        conv = _store().create_conversation(title=body.title, model=body.model, provider=provider)
        return JSONResponse({"conversation": conv}, status_code=201)

    @app.get("/api/conversations/{conversation_id}")
    def get_conversation(conversation_id: str):
        try:
            return JSONResponse(_store().get_conversation(conversation_id))
        except ConversationNotFound:
            raise HTTPException(status_code=404, detail="Conversation not found")

    @app.post("/api/conversations/{conversation_id}", status_code=201)
    def add_message(conversation_id: str, body: ConversationMessageIn):
        if not body.role or not body.content:
            raise HTTPException(status_code=400, detail="Role and content are required")
        if body.role not in ("user", "assistant", "system"):
            raise HTTPException(status_code=400, detail="Invalid role")
        store = _store()
        try:
            msg = store.append_message(conversation_id, body.role, body.content)
            store.touch(conversation_id)
        except ConversationNotFound:
            raise HTTPException(status_code=404, detail="Conversation not found")
        except PersistenceError as e:
            logger.exception("Appending to conversation %s failed", conversation_id)
            raise HTTPException(status_code=500, detail=str(e))
        return JSONResponse({"message": msg}, status_code=201)

    @app.delete("/api/conversations/{conversation_id}")
    def delete_conversation(conversation_id: str):
        try:
            _store().delete_conversation(conversation_id)
        except ConversationNotFound:
            raise HTTPException(status_code=404, detail="Conversation not found")
        except PersistenceError as e:
            logger.exception("Deleting conversation %s failed", conversation_id)
            raise HTTPException(status_code=500, detail=str(e))
        return JSONResponse({"deleted": conversation_id})

    return app


def run(
    *,
    config: Path,
    host: str = "127.0.0.1",
    port: int = 8000,
) -> None:
    import uvicorn

    app = create_app(build_context(config))
    uvicorn.run(app, host=host, port=port)
