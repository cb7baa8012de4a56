"""Main application entry point."""
import asyncio
import logging
import signal
from pathlib import Path
from typing import Optional

from telegram import BotCommand
from telegram.ext import Application, CallbackQueryHandler, CommandHandler

from derdiedas.bot import (
    SCHEDULER_KEY,
    STATS_KEY,
    bot_commands,
    handle_callback,
    handle_restart,
    handle_start,
    handle_stats,
)
from derdiedas.config import settings
from derdiedas.models.base import init_db
from derdiedas.monitoring import start_monitoring
from derdiedas.services.catalog_service import load_catalog
from derdiedas.services.round_service import RoundScheduler
from derdiedas.services.statistics_service import StatisticsStore
from derdiedas.services.storage_service import SqlStatsStorage


class DrillBot:
    """Main application class."""

    def __init__(self, catalog_path: Optional[Path] = None):
        """Initialize the application."""
        self.catalog_path = catalog_path
        self.application: Optional[Application] = None
        self.scheduler: Optional[RoundScheduler] = None
        self.running = False
        self.logger = logging.getLogger(__name__)

    def build_scheduler(self) -> RoundScheduler:
        """Load catalog and statistics. A broken catalog is fatal, broken statistics are not."""
        catalog = load_catalog(self.catalog_path)

        init_db()
        stats = StatisticsStore(SqlStatsStorage())
        self.logger.info(f"Statistics loaded for {len(stats.stats)} items")
        return RoundScheduler(catalog, stats)

    def build_application(self, scheduler: RoundScheduler) -> Application:
        """Create the Telegram application and register handlers."""
        application = Application.builder().token(settings.bot.token).build()
        application.bot_data[SCHEDULER_KEY] = scheduler
        application.bot_data[STATS_KEY] = scheduler.stats

        application.add_handler(CommandHandler("start", handle_start))
        application.add_handler(CommandHandler("restart", handle_restart))
        application.add_handler(CommandHandler("stats", handle_stats))
        application.add_handler(CallbackQueryHandler(handle_callback, pattern=r"^drill_"))
        return application

    async def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        try:
            settings.bot.validate()
            self.scheduler = self.build_scheduler()

            self.application = self.build_application(self.scheduler)
            self.logger.info("Application created")

            if settings.monitoring.enabled:
                start_monitoring(settings.monitoring.port)
                self.logger.info(f"Metrics exported on port {settings.monitoring.port}")

            await self.application.initialize()
            await self.application.bot.set_my_commands(
                [BotCommand(command, description) for command, description in bot_commands()]
            )
            await self.application.start()
            await self.application.updater.start_polling()
            self.logger.info("Application started")

            self.running = True

        except Exception as e:
            self.logger.error("Failed to start application: %s", str(e))
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the application."""
        if not self.application:
            self.running = False
            return

        try:
            if self.application.updater and self.application.updater.running:
                await self.application.updater.stop()
            if self.application.running:
                await self.application.stop()
            await self.application.shutdown()
            self.logger.info("Application stopped")

            # Retry in case an earlier save failed
            if self.scheduler:
                self.scheduler.stats.save()
        except Exception as e:
            self.logger.error("Error while stopping application: %s", str(e))
            raise
        finally:
            self.application = None
            self.running = False

    def run(self) -> None:
        """Run the application until interrupted."""
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)

        stop_event = asyncio.Event()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, stop_event.set)

        try:
            loop.run_until_complete(self.start())
            loop.run_until_complete(stop_event.wait())
            self.logger.info("Received exit signal, shutting down...")
        finally:
            loop.run_until_complete(self.stop())
            loop.close()


if __name__ == "__main__":
    DrillBot().run()
