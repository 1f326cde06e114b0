#!/usr/bin/env python3
"""
Example: Send a signed Adyen notification to a running service.

This script builds a notification the way Adyen would, signs it with
the configured HMAC key and posts it to the webhook endpoint, so the
status flow can be tested without a real Adyen account.

Usage:
    python send_test_notification.py REFERENCE --event AUTHORISATION --psp PSP1

Arguments:
    reference: Merchant reference of an existing payment
"""

import argparse
import asyncio
import json
import os
import secrets
import sys

import aiohttp

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import config
from models.notification import NotificationItem
from models.payment import to_minor_units
from services.signature import SignatureVerifier


async def send_notification(
    reference: str,
    event_code: str,
    success: bool,
    psp_reference: str,
    amount: str,
    currency: str,
    url: str
) -> None:
    """Build, sign and post a notification."""
    item = NotificationItem(
        event_code=event_code,
        success=success,
        merchant_reference=reference,
        psp_reference=psp_reference,
        merchant_account_code=config.payment_method.merchant_account,
        amount_value=to_minor_units(amount, currency),
        amount_currency=currency
    )
    SignatureVerifier(config.payment_method.hmac_key).sign(item)

    body = {
        "live": "false",
        "notificationItems": [{"NotificationRequestItem": item.to_dict()}]
    }

    print(f"Sending {event_code} (success={success}) for {reference} to {url}")
    print(json.dumps(body, indent=2))

    async with aiohttp.ClientSession() as session:
        async with session.post(url, json=body) as response:
            text = await response.text()
            print(f"\nResponse {response.status}: {text}")


async def main():
    parser = argparse.ArgumentParser(
        description='Send a signed Adyen notification for testing'
    )
    parser.add_argument(
        'reference',
        help='Merchant reference of the payment'
    )
    parser.add_argument(
        '--event',
        default='AUTHORISATION',
        help='Event code (default: AUTHORISATION)'
    )
    parser.add_argument(
        '--failed',
        action='store_true',
        help='Send success=false'
    )
    parser.add_argument(
        '--psp',
        default=None,
        help='PSP reference (default: random)'
    )
    parser.add_argument(
        '--amount',
        default='10.00',
        help='Amount in major units (default: 10.00)'
    )
    parser.add_argument(
        '--currency',
        default='EUR',
        help='Currency code (default: EUR)'
    )
    parser.add_argument(
        '--url',
        default=f"http://localhost:{config.api.port}/api/adyen/notifications",
        help='Webhook endpoint URL'
    )

    args = parser.parse_args()

    await send_notification(
        reference=args.reference,
        event_code=args.event,
        success=not args.failed,
        psp_reference=args.psp or secrets.token_hex(8).upper(),
        amount=args.amount,
        currency=args.currency,
        url=args.url
    )


if __name__ == '__main__':
    asyncio.run(main())
