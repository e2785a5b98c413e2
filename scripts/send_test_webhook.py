"""
Plays a full booking conversation against a running server,
posting the same form data Twilio would send.

Usage:
    python scripts/send_test_webhook.py [base_url] [phone]
"""

import asyncio
import sys

import httpx

CONVERSATION = ["hi", "book cab", "MG Road Metro", "Airport Terminal 2", "3:15pm", "my bookings"]


async def send(client: httpx.AsyncClient, url: str, phone: str, body: str, index: int):
    data = {
        "From": f"whatsapp:{phone}",
        "Body": body,
        "ProfileName": "Test User",
        "MessageSid": f"SMTEST{index:04d}",
    }

    response = await client.post(
        url,
        data=data,  # Form data, not json!
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        timeout=10.0,
    )
    print(f"➡️  {body!r:<28} {response.status_code} {response.text[:60]}")
    return response.status_code == 200


async def main():
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"
    phone = sys.argv[2] if len(sys.argv) > 2 else "+919876543210"
    url = f"{base_url}/api/v1/webhook"

    print(f"🧪 Testing webhook: {url}\n")

    async with httpx.AsyncClient() as client:
        results = [
            await send(client, url, phone, body, index)
            for index, body in enumerate(CONVERSATION)
        ]

    if all(results):
        print("\n✅ Webhook acknowledged every message. Check WhatsApp for the replies.")
    else:
        print("\n❌ Some messages were not acknowledged")


if __name__ == "__main__":
    asyncio.run(main())
