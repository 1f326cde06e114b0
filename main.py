#!/usr/bin/env python3
"""
Adyen Payment Notifications Service.

Runs the webhook receiver and payment API on top of the Adyen
integration, backed by the payment database.

Usage:
    python main.py

Environment variables:
    See config.py for all configuration options.
"""

import asyncio
import logging
import os
import signal
import sys
from typing import Optional

from aiohttp import web

from config import config
from database.db import Database
from models.payment import Payment
from services.gateway_client import AdyenClient
from services.integration import AdyenPaymentIntegration
from services.urls import AbsoluteUrlResolver
from api.gateway_api import create_app


def setup_logging() -> None:
    """Configure root logging from LOG_LEVEL and LOG_FILE."""
    handlers = [logging.StreamHandler(sys.stdout)]

    if config.logging.file:
        log_dir = os.path.dirname(config.logging.file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(config.logging.file))

    logging.basicConfig(
        level=getattr(logging, config.logging.level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )

    # aiohttp logs every request at INFO
    for name in ('aiohttp', 'asyncio'):
        logging.getLogger(name).setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


class PaymentGatewayService:
    """
    Owns the database, the Adyen client and the HTTP server.

    Start-up order is database, client, integration, server; shutdown
    runs in reverse.
    """

    def __init__(self):
        self.db: Optional[Database] = None
        self.client: Optional[AdyenClient] = None
        self.integration: Optional[AdyenPaymentIntegration] = None
        self.runner: Optional[web.AppRunner] = None
        self._stopped = asyncio.Event()

    async def start(self) -> None:
        """Validate configuration and bring all components up."""
        logger.info(f"Starting {config.service.name} ({config.gateway.environment})")

        errors = config.validate()
        if errors:
            for error in errors:
                logger.error(f"Configuration error: {error}")
            raise ValueError("Invalid configuration")

        self.db = Database()
        await self.db.connect()
        await self.db.init_schema()

        self.client = AdyenClient()
        await self.client.start()

        self.integration = AdyenPaymentIntegration(
            client=self.client,
            store=self.db,
            payment_method=config.payment_method,
            url_resolver=AbsoluteUrlResolver(config.api.public_base_url)
        )
        self.integration.on_payment_processed(self._payment_processed)

        await self._start_server()

        logger.info(
            f"Accepting Adyen notifications for {config.payment_method.merchant_account} "
            f"on http://{config.api.host}:{config.api.port}/api/adyen/notifications"
        )

    async def _start_server(self) -> None:
        self.runner = web.AppRunner(create_app(self.integration))
        await self.runner.setup()
        await web.TCPSite(self.runner, config.api.host, config.api.port).start()

    async def stop(self) -> None:
        """Shut components down in reverse start-up order."""
        logger.info("Shutting down...")

        if self.runner:
            await self.runner.cleanup()
            self.runner = None

        if self.client:
            await self.client.stop()
            self.client = None

        if self.db:
            await self.db.disconnect()
            self.db = None

        logger.info("Shutdown complete")
        self._stopped.set()

    async def _payment_processed(self, payment: Payment) -> None:
        """Hand authorised and captured payments to order processing."""
        logger.info(
            f"Order {payment.order_number} ready for processing: "
            f"payment {payment.short_reference()} is {payment.status.value}"
        )

    async def run(self) -> None:
        """Start and wait until stopped."""
        await self.start()
        await self._stopped.wait()


async def main() -> None:
    """Main entry point."""
    setup_logging()

    service = PaymentGatewayService()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda s=sig: _on_signal(service, s))

    try:
        await service.run()
    except Exception as e:
        logger.error(f"Service error: {e}", exc_info=True)
        await service.stop()
        sys.exit(1)


def _on_signal(service: PaymentGatewayService, sig: signal.Signals) -> None:
    logger.info(f"Received {sig.name}")
    asyncio.ensure_future(service.stop())


if __name__ == '__main__':
    asyncio.run(main())
