import sys

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from textledger.api.routes import router
from textledger.config import get_settings
from textledger.deps import repo

settings = get_settings()

logger.remove()
logger.add(sys.stderr, level=settings.log_level, format="{time:HH:mm:ss} | {level:<7} | {message}")

app = FastAPI(title="Text Ledger", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response: Response = await call_next(request)
    logger.info("{} {} → {}", request.method, request.url.path, response.status_code)
    return response


app.include_router(router)


async def _start_bot() -> None:
    from textledger.bot.handler import build_bot_app

    bot_app = build_bot_app()
    await bot_app.initialize()
    await bot_app.start()
    await bot_app.updater.start_polling(drop_pending_updates=True)
    app.state.bot = bot_app
    logger.info("Telegram bot started (polling)")


@app.on_event("startup")
async def startup():
    logger.info(
        "Ledger file {}, default currency {}, default split party {}",
        settings.db_path, settings.default_currency, settings.default_other_party,
    )
    if settings.telegram_bot_token:
        await _start_bot()
    else:
        logger.warning("TELEGRAM_BOT_TOKEN not set, chat intake is HTTP only")


@app.on_event("shutdown")
async def shutdown():
    """Stop the bot, then flush and close the ledger file."""
    bot_app = getattr(app.state, "bot", None)
    if bot_app:
        await bot_app.updater.stop()
        await bot_app.stop()
        await bot_app.shutdown()
        logger.info("Telegram bot stopped")
    repo.close()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
