"""Utility: Error handling patterns

Shows which exceptions each stage raises and how to tell them apart.
"""
import asyncio

from python_nostr_media import (
    BlossomClient,
    BlossomError,
    KeyDecodeError,
    LocalSigner,
    MediaError,
    MediaPublisher,
    NetworkError,
    PublishConfig,
    ValidationError,
)

NSEC = 'nsec....'
SERVERS = ['https://invalid.server.local', 'https://cdn.nostrcheck.me']


async def main():
    print("=== Error Scenario 1: Malformed Private Key ===")
    try:
        LocalSigner('not-a-key')
    except KeyDecodeError as e:
        print(f"Key error: {e}")

    signer = LocalSigner(NSEC)
    publisher = MediaPublisher(signer, PublishConfig.from_env(difficulty=0))

    print("\n=== Error Scenario 2: Invalid Input (nothing touches the network) ===")
    try:
        await publisher.create_video_event(url='https://example.com/a.mp4', published_at='tomorrow')
    except ValidationError as e:
        print(f"Validation error: {e}")

    print("\n=== Error Scenario 3: Wrong Media Type ===")
    try:
        await publisher.create_picture_event(files=['holiday.mp4'])
    except MediaError as e:
        print(f"Media error ({type(e).__name__}): {e}")

    print("\n=== Error Scenario 4: Download Failure ===")
    try:
        await publisher.create_video_event(url='https://example.com/missing.mp4')
    except NetworkError as e:
        print(f"Network error ({type(e).__name__}): {e}")

    print("\n=== Error Scenario 5: Graceful Fallback to Multiple Servers ===")
    for srv in SERVERS:
        try:
            print(f"Trying {srv}...", end=' ')
            result = await BlossomClient(signer, srv).upload_blob('cat.jpg')
            print(f"Success! URL: {result.url}")
            break
        except BlossomError as e:
            status = f"HTTP {e.status_code}" if e.status_code else type(e).__name__
            print(f"Failed ({status})")
    else:
        print("All servers failed!")


if __name__ == '__main__':
    asyncio.run(main())
