"""
Treehole Exporter - Client Package

This package fetches a PKU Treehole post together with its complete,
paginated comment thread and assembles them into one ordered aggregate
for rendering.

Main components:
- TreeholeClient: Post/comment endpoints and the fail-fast pagination loop
- HttpxTransport / AiohttpTransport: Interchangeable request strategies
- Credential sources: Cookie, storage and in-memory credential providers
- Data models: Post, Comment, Page, response envelopes, PostWithComments

Usage:
    from treehole_exporter import TreeholeClient
    import asyncio

    async def main():
        async with TreeholeClient() as client:
            result = await client.fetch_post_with_comments(12345)

    asyncio.run(main())
"""

from .client import TreeholeClient
from .credentials import (
    ChainSource,
    CookieStringSource,
    CredentialSource,
    MappingSource,
    StorageFileSource,
)
from .exceptions import (
    ApiFailure,
    HttpStatusError,
    MalformedResponse,
    NetworkError,
    TreeholeError,
)
from .models import Comment, ErrResponse, OkResponse, Page, Post, PostWithComments, Quote
from .transport import AiohttpTransport, HttpxTransport, Transport

__all__ = [
    'TreeholeClient',
    'Transport',
    'HttpxTransport',
    'AiohttpTransport',
    'CredentialSource',
    'CookieStringSource',
    'StorageFileSource',
    'MappingSource',
    'ChainSource',
    'Post',
    'Comment',
    'Quote',
    'Page',
    'OkResponse',
    'ErrResponse',
    'PostWithComments',
    'TreeholeError',
    'NetworkError',
    'HttpStatusError',
    'ApiFailure',
    'MalformedResponse',
]

__version__ = '1.0.0'
