"""
Treehole API client.

``TreeholeClient`` wraps the two Treehole endpoints used by the exporter
and drives the comment pagination protocol:

1. Fetch page 1 and read ``last_page`` from it
2. Fetch pages 2..last_page one at a time, in increasing order
3. Return the concatenated rows, exactly in server order

The aggregation is fail-fast. Any failure (network, HTTP status, or a
``success: false`` envelope) aborts the whole run and nothing partial is
returned. There is no retry; resilience is the caller's business.

Usage:
    async with TreeholeClient() as client:
        comments = await client.fetch_all_comments(12345)
"""

import asyncio
import logging
from typing import Callable, List, Literal, Optional

from .exceptions import ApiFailure
from .models import (
    ApiResponse,
    Comment,
    Page,
    Post,
    PostWithComments,
    parse_response,
)
from .transport import HttpxTransport, Transport
from .utils import collect_users

logger = logging.getLogger(__name__)

SortOrder = Literal["asc", "desc"]

# Page size the Treehole web UI requests
DEFAULT_PAGE_SIZE = 15

# Larger pages for exports, fewer round trips
EXPORT_PAGE_SIZE = 50

# Called after each page with (page, last_page)
PageCallback = Callable[[int, int], None]


def _parse_comment_page(data) -> Page[Comment]:
    return Page.from_dict(data, Comment.from_dict)


class TreeholeClient:
    """
    Client for the Treehole post and comment endpoints.

    Args:
        transport: Request strategy; defaults to an ``HttpxTransport``
            reading credentials from the environment
    """

    def __init__(self, transport: Optional[Transport] = None):
        self.transport = transport if transport is not None else HttpxTransport()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        close = getattr(self.transport, "aclose", None)
        if close is not None:
            await close()

    async def fetch_post(self, pid: int) -> ApiResponse[Post]:
        """Fetch a single post by id."""
        # No leading slash: it would drop the /api/ prefix of the base
        body = await self.transport.get(f"pku/{pid}")
        return parse_response(body, Post.from_dict)

    async def fetch_comments(
        self,
        pid: int,
        page: int,
        limit: int,
        sort: SortOrder,
    ) -> ApiResponse[Page[Comment]]:
        """Fetch one page of comments for a post."""
        body = await self.transport.get(
            f"pku_comment_v3/{pid}",
            {"page": page, "limit": limit, "sort": sort},
        )
        return parse_response(body, _parse_comment_page)

    async def fetch_all_comments(
        self,
        pid: int,
        sort: SortOrder = "asc",
        page_size: int = DEFAULT_PAGE_SIZE,
        on_page: Optional[PageCallback] = None,
    ) -> List[Comment]:
        """
        Fetch every comment of a post, page by page.

        ``last_page`` is taken from page 1 and kept for the rest of the run,
        even if the thread grows or shrinks meanwhile. Pages are requested
        strictly one after another; the order of the result is the server's.

        Args:
            pid: Post identifier
            sort: "asc" (oldest first) or "desc"
            page_size: Comments per page
            on_page: Optional progress hook, called as ``on_page(page, last_page)``

        Returns:
            All comments, pages concatenated in ascending page order

        Raises:
            ApiFailure: A page came back with ``success: false``
            HttpStatusError, NetworkError, MalformedResponse: from the transport
        """
        first = await self.fetch_comments(pid, 1, page_size, sort)
        if not first.success:
            logger.warning("Comments of #%d, page 1 failed: %s", pid, first.message)
            raise ApiFailure(first.message, first.code)

        last_page = first.data.last_page
        comments: List[Comment] = list(first.data.data)
        logger.info("Post #%d: %d comments over %d page(s)", pid, first.data.total, last_page)
        if on_page is not None:
            on_page(1, last_page)

        for page in range(2, last_page + 1):
            response = await self.fetch_comments(pid, page, page_size, sort)
            if not response.success:
                logger.warning("Comments of #%d, page %d/%d failed: %s",
                               pid, page, last_page, response.message)
                raise ApiFailure(response.message, response.code)

            comments.extend(response.data.data)
            logger.debug("Post #%d: page %d/%d, %d rows", pid, page, last_page, len(response.data.data))
            if on_page is not None:
                on_page(page, last_page)

        return comments

    async def fetch_post_with_comments(
        self,
        pid: int,
        sort: SortOrder = "asc",
        page_size: int = EXPORT_PAGE_SIZE,
        on_page: Optional[PageCallback] = None,
    ) -> PostWithComments:
        """
        Fetch a post and its complete comment thread as one aggregate.

        The post request and the comment pagination are independent and run
        concurrently; pages inside the pagination stay sequential. When either
        side fails, the other is cancelled before the error is re-raised.

        Raises:
            ApiFailure: The post or any comment page came back with ``success: false``
        """
        logger.info("Fetching post #%d", pid)

        async def fetch_post_data() -> Post:
            return (await self.fetch_post(pid)).unwrap()

        post_task = asyncio.create_task(fetch_post_data())
        comments_task = asyncio.create_task(
            self.fetch_all_comments(pid, sort, page_size, on_page)
        )
        tasks = [post_task, comments_task]
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
            for task in done:
                task.result()
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        comments = comments_task.result()
        return PostWithComments(
            post=post_task.result(),
            comments=comments,
            users=collect_users(comments),
        )
