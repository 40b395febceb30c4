"""NIP-68: Publish a picture event

Demonstrates how to:
1. Upload local images to a Blossom server
2. Reference an image that is already hosted elsewhere
3. Build, prove work on and sign a kind 20 event
4. Publish it to a couple of relays
"""
import asyncio

from python_nostr_media import LocalSigner, MediaPublisher, PublishConfig
from python_nostr_media.event import event_to_json

# Configuration
NSEC = 'nsec....'  # Your Nostr private key (nsec or hex)
FILES = ['cat.jpg']
URLS = ['https://example.com/images/sunset.png']
RELAYS = ['wss://relay.damus.io', 'wss://nos.lol']


async def main():
    signer = LocalSigner(NSEC)
    config = PublishConfig.from_env(blossom_server='https://cdn.nostrcheck.me', difficulty=16)
    publisher = MediaPublisher(signer, config)

    print("=== Building picture event ===")
    event = await publisher.create_picture_event(
        files=FILES,
        urls=URLS,
        title='Cat and sunset',
        description='Two favourites #cats #sunset',
        hashtags=True,
    )
    print(event_to_json(event))

    print(f"\n=== Publishing to {len(RELAYS)} relays ===")
    results = await publisher.publish(event, RELAYS)
    for result in results:
        mark = "✓" if result.ok else "✗"
        print(f"{mark} {result.describe()}")


if __name__ == '__main__':
    asyncio.run(main())
