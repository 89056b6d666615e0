"""Main entry point for ledgerbot."""

import asyncio
import signal
import sys

from ledgerbot.bot.handler import MessageHandler
from ledgerbot.bot.security import ChatAllowlist, RateLimiter
from ledgerbot.config import Settings, get_settings
from ledgerbot.exceptions import InstanceLockedError, StoreError
from ledgerbot.lock import InstanceLock
from ledgerbot.logging import get_logger, setup_logging
from ledgerbot.storage import create_store
from ledgerbot.telegram.client import BotClient
from ledgerbot.telegram.updates import UpdateStream


async def serve(settings: Settings) -> None:
    """Consume the update stream until cancelled, one message at a time."""
    log = get_logger("ledgerbot.main")

    store = create_store(settings)
    await store.initialize()
    log.info("store_initialized")

    client = BotClient(
        settings.bot_token.get_secret_value(),
        base_url=settings.api_base_url,
    )
    handler = MessageHandler(
        store,
        client,
        allowlist=ChatAllowlist(settings.allowed_chat_ids),
        rate_limiter=RateLimiter(
            max_messages=settings.rate_limit_messages,
            window_seconds=settings.rate_limit_window,
        ),
    )
    stream = UpdateStream(
        client,
        poll_timeout=settings.poll_timeout,
        backoff_base=settings.retry_backoff_base,
        backoff_max=settings.retry_backoff_max,
        dedup_horizon=settings.dedup_horizon,
    )

    log.info("polling_started", poll_timeout=settings.poll_timeout)
    try:
        async for message in stream.produce():
            await handler.handle(message)
    finally:
        await store.close()
        log.info("store_closed")


async def main() -> None:
    """Main application entry point."""
    setup_logging()
    log = get_logger("ledgerbot.main")

    settings = get_settings()
    log.info(
        "starting_ledgerbot",
        environment=settings.environment,
        backend="postgres" if settings.uses_postgres else "sqlite",
    )

    task = asyncio.current_task()
    loop = asyncio.get_running_loop()
    if task is not None:
        loop.add_signal_handler(signal.SIGTERM, task.cancel)

    try:
        with InstanceLock(settings.lock_file):
            await serve(settings)
    except InstanceLockedError as exc:
        log.error("instance_already_running", error=str(exc))
        sys.exit(1)
    except StoreError as exc:
        log.error("store_unavailable", error=str(exc))
        sys.exit(1)
    except asyncio.CancelledError:
        log.info("shutdown_requested")
    finally:
        log.info("ledgerbot_stopped")


def run() -> None:
    """Run the application."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
