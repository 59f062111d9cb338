#!/usr/bin/env python3
"""Example script demonstrating Treehole Exporter usage."""

import asyncio
import sys
from pathlib import Path

# Add src to path if running from repository
sys.path.insert(0, str(Path(__file__).parent / 'src'))

from treehole_exporter import (
    AiohttpTransport,
    ApiFailure,
    CookieStringSource,
    HttpxTransport,
    StorageFileSource,
    TreeholeClient,
    TreeholeError,
)

PID = 7654321


async def example_single_page():
    """Example of fetching one page and handling the envelope explicitly."""
    print("="*60)
    print("Example 1: One Comment Page")
    print("="*60)

    transport = HttpxTransport(cookies=CookieStringSource.from_file("cookies.txt"))
    async with TreeholeClient(transport) as client:
        response = await client.fetch_comments(PID, page=1, limit=15, sort="asc")

        if response.success:
            page = response.data
            print(f"Page {page.current_page}/{page.last_page}, {page.total} comments in total")
            for comment in page.data[:3]:
                print(f"  [{comment.name}] {comment.text[:40]}")
        else:
            print(f"Server refused: {response.message} (code {response.code})")


async def example_full_thread():
    """Example of fetching the whole thread through the aiohttp transport."""
    print("\n" + "="*60)
    print("Example 2: Whole Thread")
    print("="*60)

    transport = AiohttpTransport(
        cookies=CookieStringSource.from_file("cookies.txt"),
        storage=StorageFileSource("storage.json"),
    )
    async with TreeholeClient(transport) as client:
        try:
            result = await client.fetch_post_with_comments(PID)
        except ApiFailure as e:
            print(f"Server refused: {e.message}")
            return
        except TreeholeError as e:
            print(f"Failed: {e}")
            return

    print(f"#{result.post.pid}: {len(result.comments)} comments")
    print(f"Participants: {', '.join(result.users)}")


async def example_deadline():
    """Example of putting a deadline on the aggregation from the outside."""
    print("\n" + "="*60)
    print("Example 3: Caller-side Deadline")
    print("="*60)

    async with TreeholeClient() as client:
        try:
            comments = await asyncio.wait_for(client.fetch_all_comments(PID), timeout=30)
            print(f"Fetched {len(comments)} comments")
        except asyncio.TimeoutError:
            print("Gave up after 30 seconds")
        except TreeholeError as e:
            print(f"Failed: {e}")


async def main():
    """Run all examples."""
    await example_single_page()
    await example_full_thread()
    await example_deadline()


if __name__ == '__main__':
    asyncio.run(main())
