"""
Data models for the Treehole exporter.

This module defines typed structures for the Treehole web API:

- ``OkResponse`` / ``ErrResponse``: the response envelope every endpoint
  returns, discriminated by its ``success`` flag
- ``Page``: one page of a paginated listing
- ``Post``, ``Comment``, ``Quote``: the forum content itself
- ``PostWithComments``: the aggregate handed to the renderer

Each model has ``from_dict`` (wire JSON to model) and ``to_dict`` (model
back to JSON using the wire key names).
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

from .exceptions import ApiFailure, MalformedResponse

T = TypeVar("T")


def _field(data: Dict[str, Any], key: str, kind: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise MalformedResponse(f"{kind}: missing field {key!r}") from None


def _int_field(data: Dict[str, Any], key: str, kind: str) -> int:
    value = _field(data, key, kind)
    # bool is an int subclass but never a valid count
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedResponse(f"{kind}: field {key!r} is not an integer: {value!r}")
    return value


def _ensure_object(data: Any, kind: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise MalformedResponse(f"{kind}: expected a JSON object, got {type(data).__name__}")
    return data


@dataclass(frozen=True)
class Post:
    """
    A single Treehole post ("hole").

    Attributes:
        pid: Post identifier
        text: Body text
        type: Content type reported by the server (e.g. "text")
        timestamp: Unix timestamp (seconds)
        reply: Number of replies
        likenum: Number of likes / follows
        anonymous: Anonymity flag as sent by the server (1 = anonymous)
        url: Canonical URL of attached media or the post
    """
    pid: int
    text: str
    type: str
    timestamp: int
    reply: int
    likenum: int
    anonymous: int
    url: str

    @classmethod
    def from_dict(cls, data: Any) -> "Post":
        data = _ensure_object(data, "post")
        return cls(
            pid=_field(data, "pid", "post"),
            text=_field(data, "text", "post"),
            type=_field(data, "type", "post"),
            timestamp=_field(data, "timestamp", "post"),
            reply=_field(data, "reply", "post"),
            likenum=_field(data, "likenum", "post"),
            anonymous=_field(data, "anonymous", "post"),
            url=_field(data, "url", "post"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Quote:
    """Reference to the comment a reply quotes."""
    pid: int
    text: str
    name_tag: str

    @classmethod
    def from_dict(cls, data: Any) -> "Quote":
        data = _ensure_object(data, "quote")
        return cls(
            pid=_field(data, "pid", "quote"),
            text=_field(data, "text", "quote"),
            name_tag=_field(data, "name_tag", "quote"),
        )


@dataclass(frozen=True)
class Comment:
    """
    A single comment under a post.

    Attributes:
        cid: Comment identifier
        pid: Identifier of the parent post
        text: Body text
        comment_id: Secondary ordinal of the comment inside the thread
        name: Author display name ("Alice", "Bob", ...), may be empty
        quote: Quoted comment, None when the comment quotes nothing
        timestamp: Unix timestamp (seconds)
    """
    cid: int
    pid: int
    text: str
    comment_id: int
    name: str
    quote: Optional[Quote]
    timestamp: int

    @classmethod
    def from_dict(cls, data: Any) -> "Comment":
        data = _ensure_object(data, "comment")
        quote = data.get("quote")
        return cls(
            cid=_field(data, "cid", "comment"),
            pid=_field(data, "pid", "comment"),
            text=_field(data, "text", "comment"),
            comment_id=_field(data, "comment_id", "comment"),
            name=_field(data, "name", "comment"),
            quote=Quote.from_dict(quote) if quote is not None else None,
            timestamp=_field(data, "timestamp", "comment"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Page(Generic[T]):
    """
    One page of a paginated listing.

    ``last_page`` is the authoritative upper bound for pagination. ``from_``
    and ``to`` are the 1-based item bounds of this page; the server sends
    ``null`` for both when the page is empty.
    """
    current_page: int
    data: List[T]
    from_: Optional[int]
    to: Optional[int]
    total: int
    last_page: int

    @classmethod
    def from_dict(cls, data: Any, parse_item: Callable[[Any], T]) -> "Page[T]":
        data = _ensure_object(data, "page")
        rows = _field(data, "data", "page")
        if not isinstance(rows, list):
            raise MalformedResponse("page: 'data' is not a list")
        return cls(
            current_page=_int_field(data, "current_page", "page"),
            data=[parse_item(row) for row in rows],
            from_=data.get("from"),
            to=data.get("to"),
            total=_int_field(data, "total", "page"),
            last_page=_int_field(data, "last_page", "page"),
        )

    def to_dict(self) -> dict:
        return {
            "current_page": self.current_page,
            "data": [row.to_dict() if hasattr(row, "to_dict") else row for row in self.data],
            "from": self.from_,
            "to": self.to,
            "total": self.total,
            "last_page": self.last_page,
        }


@dataclass
class OkResponse(Generic[T]):
    """Successful envelope: carries the payload."""
    code: int
    message: str
    timestamp: int
    data: T
    success: bool = field(default=True, init=False)

    def unwrap(self) -> T:
        return self.data


@dataclass
class ErrResponse:
    """Failed envelope: server message and code, no payload."""
    code: int
    message: str
    timestamp: int
    success: bool = field(default=False, init=False)

    def unwrap(self):
        raise ApiFailure(self.message, self.code)


ApiResponse = Union[OkResponse[T], ErrResponse]


def parse_response(payload: Any, parse_data: Callable[[Any], T]) -> "ApiResponse[T]":
    """
    Turn a decoded JSON body into an envelope.

    Args:
        payload: Decoded JSON body
        parse_data: Converter applied to ``data`` of a successful envelope

    Returns:
        ``OkResponse`` when ``success`` is true, ``ErrResponse`` otherwise

    Raises:
        MalformedResponse: body is not an object, lacks ``success``, or the
            success payload is missing or mis-shaped
    """
    payload = _ensure_object(payload, "envelope")
    success = _field(payload, "success", "envelope")
    code = _field(payload, "code", "envelope")
    message = _field(payload, "message", "envelope")
    timestamp = _field(payload, "timestamp", "envelope")

    if not success:
        return ErrResponse(code=code, message=message, timestamp=timestamp)

    data = payload.get("data")
    if data is None:
        raise MalformedResponse("envelope: success without 'data'")
    try:
        parsed = parse_data(data)
    except (TypeError, ValueError) as e:
        raise MalformedResponse(f"envelope: bad payload: {e}") from e
    return OkResponse(code=code, message=message, timestamp=timestamp, data=parsed)


@dataclass
class PostWithComments:
    """
    The aggregate handed to the renderer.

    Attributes:
        post: The post itself
        comments: Every comment, in server order across all pages
        users: De-duplicated participant names, the post author sentinel first
    """
    post: Post
    comments: List[Comment] = field(default_factory=list)
    users: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "post": self.post.to_dict(),
            "comments": [c.to_dict() for c in self.comments],
            "users": list(self.users),
        }
