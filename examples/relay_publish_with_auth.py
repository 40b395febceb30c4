"""NIP-42: Publish to relays that require authentication

Every relay gets its own connection. When a relay answers a publish with
``auth-required:``, the publisher signs a kind 22242 event for the relay's
challenge, sends it, and retries the publish once. One relay failing never
affects the others.
"""
import asyncio
import logging

from python_nostr_media import LocalSigner, RelayPublisher, stamp_work
from python_nostr_media.event import new_event

NSEC = 'nsec....'
RELAYS = [
    'wss://relay.damus.io',
    'wss://nostr.wine',  # paid relay, asks for auth
    'wss://does-not-exist.invalid',
]


async def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    signer = LocalSigner(NSEC)

    event = new_event(1, await signer.get_public_key(), [], 'Hello from python-nostr-media')
    stamp_work(event, 12)
    await signer.sign(event)

    publisher = RelayPublisher(signer, connect_timeout=5, publish_timeout=5, auth_timeout=20)
    results = await publisher.publish(event, RELAYS)

    print("\n=== Summary ===")
    for result in results:
        auth = " (authenticated)" if result.authenticated else ""
        print(f"{result.status.value:15} {result.url}{auth} {result.message}")
    print(f"Published to {sum(r.ok for r in results)}/{len(results)} relays")


if __name__ == '__main__':
    asyncio.run(main())
