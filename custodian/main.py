"""Entry point for the file custodian bot."""

import argparse
import asyncio
import signal
import sys
from typing import Optional

import httpx
from pymongo import MongoClient
from telegram import Update
from telegram.ext import Application, ApplicationBuilder

from common.logging_config import setup_logging, get_logger
from custodian.audit_sink import create_audit_sink
from custodian.config import Settings, load_settings, resolve_config_path
from custodian.context import build_context
from custodian.database import init_database
from custodian.exceptions import CustodianError
from custodian.repositories import DualStoreRepository, FileRepository, UserRepository
from custodian.routes import TelegramRoutes
from custodian.telegram_messenger import TelegramMessenger
from custodian.update_processor import PerUserUpdateProcessor

logger = get_logger("custodian")


def build_repository(settings: Settings, mongo_client: MongoClient) -> DualStoreRepository:
    """
    Create both stores and their schema.
    """
    init_database(settings.sqlite_path)
    logger.info(f"User database initialized at {settings.sqlite_path}")

    files = FileRepository(mongo_client[settings.mongo_database])
    files.ensure_indexes()

    return DualStoreRepository(UserRepository(settings.sqlite_path), files)


def build_application(settings: Settings) -> Application:
    return (
        ApplicationBuilder()
        .token(settings.bot_token)
        .concurrent_updates(PerUserUpdateProcessor(settings.max_concurrent_updates))
        .build()
    )


def install_stop_signals(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop_event.set))


async def run(settings: Settings) -> None:
    """
    Start the stores and the bot, then poll until SIGINT or SIGTERM.
    """
    mongo_client = MongoClient(settings.mongo_uri)
    http_client = httpx.AsyncClient(timeout=settings.download_timeout_seconds, follow_redirects=True)

    try:
        repository = build_repository(settings, mongo_client)

        flagged = await repository.reconcile_admins(settings.admins)
        logger.info(f"Administrator flags verified ({flagged} administrator(s))")

        application = build_application(settings)
        messenger = TelegramMessenger(application.bot, settings.bot_token)
        ctx = build_context(settings, repository, messenger, http_client, create_audit_sink(settings))
        TelegramRoutes(ctx).register(application)

        stop_event = asyncio.Event()
        install_stop_signals(stop_event)

        async with application:
            await application.start()
            await application.updater.start_polling(allowed_updates=Update.ALL_TYPES)
            logger.info("Bot started successfully!")

            await stop_event.wait()

            logger.info("Bot stopping...")
            await application.updater.stop()
            await application.stop()
    finally:
        await http_client.aclose()
        mongo_client.close()


def main(argv: Optional[list] = None) -> None:
    parser = argparse.ArgumentParser(description="Telegram file custodian bot")
    parser.add_argument("--config", help="Path to config.json")
    args = parser.parse_args(argv)

    config_path = resolve_config_path(args.config)
    try:
        settings = load_settings(config_path)
        setup_logging("custodian", settings.log_level)
        settings.validate_for_startup()
    except CustodianError as e:
        setup_logging("custodian")
        logger.critical(f"Failed to load config: {e}")
        sys.exit(1)

    logger.info(f"Starting Telegram bot with config {config_path}")

    try:
        asyncio.run(run(settings))
    except CustodianError as e:
        logger.critical(f"Failed to start bot: {e}", exc_info=True)
        sys.exit(1)
    except Exception as e:
        logger.critical(f"Bot crashed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
