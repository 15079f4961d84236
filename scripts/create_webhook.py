"""Subscribe the service's webhook URL to ShipBob ``order_shipped`` events.

Requires a stored credential, so run the OAuth flow (``/api/auth/shipbob``)
once before using this::

    python -m scripts.create_webhook
    python -m scripts.create_webhook --url https://hooks.example.com/api/webhooks/shipbob/order-shipped
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from app.clients import ShipBobApiError
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.dependencies import get_shipbob_client
from app.services import NotAuthorized, TokenRefreshFailed

logger = logging.getLogger("scripts.create_webhook")

EXIT_OK = 0
EXIT_CONFIG_ERROR = 2
EXIT_AUTH_ERROR = 3
EXIT_API_ERROR = 4


async def _subscribe(url: str, topic: str, description: str) -> int:
    client = get_shipbob_client()
    try:
        created = await client.create_webhook(
            topic=topic, subscription_url=url, description=description
        )
    except (NotAuthorized, TokenRefreshFailed) as exc:
        logger.error("Cannot authenticate with ShipBob: %s", exc)
        return EXIT_AUTH_ERROR
    except ShipBobApiError as exc:
        logger.error("Failed to create webhook: %s %s", exc, exc.payload)
        return EXIT_API_ERROR

    logger.info("Webhook created")
    print(json.dumps(created, indent=2))
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--url",
        default=str(settings.shipbob.webhook_url) if settings.shipbob.webhook_url else None,
        help="Subscription URL (default: SHIPBOB_WEBHOOK_URL).",
    )
    parser.add_argument("--topic", default="order_shipped")
    parser.add_argument(
        "--description", default="Order enrichment for order_shipped"
    )
    args = parser.parse_args(argv)

    configure_logging(settings.log_level, log_file=settings.log_file)
    if not args.url:
        logger.error("No subscription URL; pass --url or set SHIPBOB_WEBHOOK_URL")
        return EXIT_CONFIG_ERROR
    return asyncio.run(_subscribe(args.url, args.topic, args.description))


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
