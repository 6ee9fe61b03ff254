"""
Telegram Brain Server

FastAPI server for receiving Telegram webhooks and capturing into the vault.

Endpoints:
- POST /webhook: Telegram webhook endpoint
- GET /health: Health check with vault verification
- POST /test: Smoke test (no persistence)
- GET /captures/export: Export inbox captures (bearer = bot token)

Pipeline:
1. Validate source IP and webhook secret
2. Rate limit per chat
3. Parse update with the Telegram handler
4. Dispatch in the background: command or capture pipeline
"""

import json
import logging
from typing import Optional
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, HTTPException, Header, BackgroundTasks
from fastapi.responses import JSONResponse

from ..common.config import load_config, BrainConfig, ensure_directories
from ..common.blob_store import BlobStore, LocalBlobStore
from ..common.llm_client import LLMClient
from ..common.notifier import ChatNotifier, TelegramNotifier
from ..capture.audit import AuditLog
from ..capture.classifier import CaptureClassifier
from ..capture.pipeline import CapturePipeline
from ..capture.router import format_timestamp
from ..capture.sync import GitHubSync
from ..retriever.answerer import VaultAnswerer
from .commands import CommandDispatcher, INBOX_PREFIX
from .handlers import TelegramHandler, Message
from .security import RateLimiter, client_ip, is_telegram_ip

logger = logging.getLogger("brain.bot.server")

RATE_LIMITED_TEXT = "⚠️ Rate limited. Please wait a minute."
VAULT_MIN_CONTEXT_CHARS = 1000


# Global state
config: Optional[BrainConfig] = None
store: Optional[BlobStore] = None
llm_client: Optional[LLMClient] = None
notifier: Optional[ChatNotifier] = None
telegram_handler: Optional[TelegramHandler] = None
rate_limiter: Optional[RateLimiter] = None
pipeline: Optional[CapturePipeline] = None
dispatcher: Optional[CommandDispatcher] = None


def init_components(app_config: BrainConfig) -> None:
    """Build every component from config and install them as globals"""
    global config, store, llm_client, notifier, telegram_handler, rate_limiter
    global pipeline, dispatcher

    config = app_config
    store = LocalBlobStore(app_config.storage.vault_dir)
    logger.info("Vault store at %s", store.root)

    llm_client = LLMClient.from_config(app_config.llm)
    if llm_client.is_available:
        logger.info("LLM ready (%s / %s)", app_config.llm.provider, app_config.llm.model)
    else:
        logger.warning("LLM not available, captures will use fallback classification")

    notifier = TelegramNotifier(
        bot_token=app_config.telegram.bot_token,
        alert_chat_id=app_config.telegram.allowed_user_id or None,
    )
    telegram_handler = TelegramHandler(
        webhook_secret=app_config.telegram.webhook_secret,
        allowed_user_id=app_config.telegram.allowed_user_id,
    )
    rate_limiter = RateLimiter()

    sync = GitHubSync(app_config.sync)
    if not sync.enabled:
        logger.info("GitHub sync disabled (no token/repo)")

    pipeline = CapturePipeline(
        store=store,
        classifier=CaptureClassifier(llm_client),
        notifier=notifier,
        sync=sync,
        audit=AuditLog(store, app_config.storage.audit_log_key),
        vault_context_key=app_config.storage.context_key,
    )
    dispatcher = CommandDispatcher(
        handler=telegram_handler,
        notifier=notifier,
        store=store,
        pipeline=pipeline,
        answerer=VaultAnswerer(store, llm_client, context_key=app_config.storage.context_key),
        sync=sync,
        model_name=app_config.llm.model,
        context_key=app_config.storage.context_key,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize components on startup"""
    logger.info("Starting up...")

    ensure_directories()
    init_components(load_config())
    logger.info("Ready to receive updates")

    yield

    logger.info("Shutting down...")
    if pipeline:
        await pipeline.drain()


app = FastAPI(
    title="Telegram Brain",
    description="Telegram capture classification and vault routing",
    version="0.1.0",
    lifespan=lifespan
)


# =============================================================================
# Background Tasks
# =============================================================================

async def process_message(message: Message):
    """Dispatch a parsed message; failures are logged and alerted, never raised"""
    if not dispatcher:
        logger.warning("Not initialized, skipping message")
        return

    try:
        await dispatcher.dispatch(message)
    except Exception as e:
        logger.exception("Error handling update from chat %s", message.chat_id)
        if notifier:
            await notifier.alert_on_error("/webhook", e)


# =============================================================================
# Endpoints
# =============================================================================

@app.get("/health")
async def health():
    """Health check endpoint"""
    checks = {
        "llm": bool(config and config.llm.api_key),
        "telegram": bool(config and config.telegram.bot_token),
    }

    try:
        content = await store.get(config.storage.context_key) if store else None
        if content:
            checks["vault"] = {
                "ok": len(content) > VAULT_MIN_CONTEXT_CHARS,
                "sizeKB": round(len(content) / 1024),
            }
        else:
            checks["vault"] = {"ok": False, "error": "No context file"}
    except Exception as e:
        checks["vault"] = {"ok": False, "error": str(e)}

    all_ok = checks["llm"] and checks["telegram"] and checks["vault"]["ok"]

    return {
        "status": "healthy" if all_ok else "degraded",
        "checks": checks,
        "timestamp": format_timestamp(),
    }


@app.post("/webhook")
async def telegram_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    x_telegram_bot_api_secret_token: Optional[str] = Header(None),
):
    """
    Handle Telegram webhook updates.

    This is the main entry point for the bot.
    """
    if not telegram_handler or not rate_limiter:
        raise HTTPException(status_code=503, detail="Handler not initialized")

    # Verify source
    peer = request.client.host if request.client else None
    ip = client_ip(request.headers, peer)
    if not is_telegram_ip(ip):
        logger.warning("Webhook rejected: invalid IP %s", ip)
        return JSONResponse({"error": "Forbidden"}, status_code=403)

    # Verify secret
    if not telegram_handler.verify_secret(x_telegram_bot_api_secret_token):
        logger.warning("Webhook auth failed: invalid or missing secret token")
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    # Parse JSON
    body = await request.body()
    try:
        update = json.loads(body)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid JSON")
    if not isinstance(update, dict):
        raise HTTPException(status_code=400, detail="Invalid update")

    logger.debug("Received update: %s", body[:200])

    # Rate limit per chat
    chat_id = telegram_handler.chat_id_of(update)
    if chat_id is not None and not rate_limiter.allow(chat_id):
        logger.warning("Rate limited: chat_id=%s", chat_id)
        if notifier:
            background_tasks.add_task(notifier.send_text, chat_id, RATE_LIMITED_TEXT)
        return JSONResponse({"ok": True})

    message = telegram_handler.parse_update(update)
    if message and telegram_handler.should_process(message):
        # Process in background (don't block response)
        background_tasks.add_task(process_message, message)
    else:
        logger.debug("No message or text, skipping")

    # Acknowledge receipt
    return JSONResponse({"ok": True})


@app.post("/test")
async def smoke_test():
    """Smoke test endpoint (no persistence, for deploy verification)"""
    return {
        "ok": True,
        "message": "Test endpoint reached",
        "timestamp": format_timestamp(),
        "checks": {
            "llm": bool(config and config.llm.api_key),
            "telegram": bool(config and config.telegram.bot_token),
            "vault": store is not None,
        },
    }


@app.get("/captures/export")
async def export_captures(authorization: Optional[str] = Header(None)):
    """Export every inbox note with its content"""
    if not config or not store:
        raise HTTPException(status_code=503, detail="Store not initialized")

    expected = f"Bearer {config.telegram.bot_token}"
    if not config.telegram.bot_token or authorization != expected:
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    try:
        listing = await store.list(INBOX_PREFIX, limit=1000)
        captures = []
        for blob in listing:
            if not blob.key.endswith(".md"):
                continue
            content = await store.get(blob.key)
            if content is None:
                continue
            captures.append({
                "key": blob.key,
                "filename": blob.key.split("/")[-1],
                "uploaded": blob.uploaded.isoformat(),
                "content": content,
            })
    except Exception as e:
        logger.error("Export error: %s", e)
        return JSONResponse({"error": str(e)}, status_code=500)

    return {
        "captures": captures,
        "count": len(captures),
        "exported_at": format_timestamp(),
    }


# =============================================================================
# CLI Entry Point
# =============================================================================

def run_server():
    """Run the Telegram Brain server"""
    import uvicorn

    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    port = load_config().telegram.webhook_port

    logger.info("Starting server on port %s", port)
    uvicorn.run(
        "brain.bot.server:app",
        host="0.0.0.0",
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    run_server()
