"""NIP-71: Publish a video event

Uploads a local video (or points at a hosted one), grabs a frame one second in
with ffmpeg for the dimensions and blurhash, and publishes the event.

Vertical videos (height > width) become kind 22 instead of 21. With
LEGACY = True the addressable kinds 34235/34236 are used and a ``d`` tag is
added (DESCRIPTOR, or the video's SHA-256 when None).
"""
import asyncio

from python_nostr_media import LocalSigner, MediaPublisher, NostrMediaError, PublishConfig
from python_nostr_media.relay import resolve_relays

# Configuration
NSEC = 'nsec....'
VIDEO_FILE = 'holiday.mp4'  # or None to use VIDEO_URL
VIDEO_URL = None  # e.g. 'https://example.com/videos/holiday.mp4'
LEGACY = False
DESCRIPTOR = None
DURATION = 95  # seconds, 0 to omit
RELAYS = 'relays.json'  # a ws(s):// URL or a JSON file with a list of them


async def main():
    signer = LocalSigner(NSEC)
    publisher = MediaPublisher(signer, PublishConfig.from_env(pow_timeout=120))

    try:
        event = await publisher.create_video_event(
            file=VIDEO_FILE,
            url=VIDEO_URL,
            description='Summer at the coast #travel',
            legacy=LEGACY,
            descriptor=DESCRIPTOR,
            duration=DURATION,
            hashtags=True,
        )
    except NostrMediaError as e:
        print(f"✗ Could not build event: {type(e).__name__}: {e}")
        return

    print(f"✓ Built kind {event.kind} event {event.id}")

    relays = resolve_relays(RELAYS)
    if not relays:
        print("No relays configured, not publishing")
        return
    for result in await publisher.publish(event, relays):
        print(result.describe())


if __name__ == '__main__':
    asyncio.run(main())
