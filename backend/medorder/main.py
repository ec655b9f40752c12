"""
MedOrder backend: Telegram order intake for medicine resellers.

ARCHITECTURE:
- Telegram Bot: shopkeepers browse stock, place orders, leave feedback
- FastAPI Backend: admin API, webhook bridge, lifecycle of bot and scheduler
- SQL database: source of truth for catalog, orders, accounts

Orders are committed in one transaction that re-checks stock under row locks.
Conversation progress lives in memory only and is lost on restart.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from medorder.agent.conversation_state import SessionStore
from medorder.agent.order_flow import OrderFlow
from medorder.agent.reminder_scheduler import start_reminder_scheduler, stop_reminder_scheduler
from medorder.api.routes import accounts, ai, analytics, catalog, feedback, orders, webhook
from medorder.core.config import settings
from medorder.db.init_db import init_db
from medorder.db.session import SessionLocal
from medorder.services.catalog_index import get_catalog_index
from medorder.telegram.bot import TelegramNotifier, start_bot, stop_bot

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _load_catalog_index():
    db = SessionLocal()
    try:
        get_catalog_index().refresh(db)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
    1. Create tables
    2. Build the catalog index
    3. Start the Telegram bot and the daily reminder (if a token is set)

    Shutdown: stop both.
    """
    logger.info("[*] Initializing database...")
    init_db()
    _load_catalog_index()

    notifier = TelegramNotifier()
    flow = OrderFlow(SessionStore(), get_catalog_index(), notifier)
    app.state.order_flow = flow

    bot_started = False
    if settings.TELEGRAM_BOT_TOKEN:
        try:
            bot_started = await start_bot(flow, notifier) is not None
        except Exception as e:
            logger.error(f"[ERROR] Telegram bot failed to start: {e}", exc_info=True)
        if bot_started:
            start_reminder_scheduler(notifier)
            logger.info("[OK] Bot and scheduler started")
    else:
        logger.warning("[WARN] Telegram bot disabled (no token)")

    yield

    if bot_started:
        stop_reminder_scheduler()
        await stop_bot()


app = FastAPI(
    title="MedOrder API",
    description="Admin panel & Telegram bridge for medicine order intake.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin"],
    max_age=600,
)

app.include_router(webhook.router, prefix="/api", tags=["telegram"])
app.include_router(orders.router, prefix="/api/orders", tags=["orders"])
app.include_router(catalog.router, prefix="/api/catalog", tags=["catalog"])
app.include_router(accounts.router, prefix="/api/accounts", tags=["accounts"])
app.include_router(feedback.router, prefix="/api/feedback", tags=["feedback"])
app.include_router(analytics.router, prefix="/api/analytics", tags=["analytics"])
app.include_router(ai.router, prefix="/api/ai", tags=["ai"])


@app.get("/health")
def health():
    return {"status": "ok", "catalog_items": len(get_catalog_index())}
