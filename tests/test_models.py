"""Tests for data models and envelope parsing."""

import dataclasses

import pytest

from helpers import comment, err, ok, page, post
from treehole_exporter.exceptions import ApiFailure, MalformedResponse
from treehole_exporter.models import (
    Comment,
    ErrResponse,
    OkResponse,
    Page,
    Post,
    PostWithComments,
    Quote,
    parse_response,
)


class TestPost:
    def test_from_dict(self):
        p = Post.from_dict(post(pid=7, text="hello"))
        assert p.pid == 7
        assert p.text == "hello"
        assert p.type == "text"
        assert p.likenum == 7
        assert p.anonymous == 1

    def test_is_immutable(self):
        p = Post.from_dict(post())
        with pytest.raises(dataclasses.FrozenInstanceError):
            p.text = "edited"

    def test_missing_field(self):
        data = post()
        del data["timestamp"]
        with pytest.raises(MalformedResponse, match="timestamp"):
            Post.from_dict(data)

    def test_not_an_object(self):
        with pytest.raises(MalformedResponse):
            Post.from_dict([1, 2, 3])

    def test_to_dict_uses_wire_keys(self):
        assert Post.from_dict(post()).to_dict() == post()


class TestComment:
    def test_without_quote(self):
        c = Comment.from_dict(comment(1, name="Bob"))
        assert c.cid == 1
        assert c.name == "Bob"
        assert c.quote is None

    def test_with_quote(self):
        c = Comment.from_dict(comment(2, quote={"pid": 42, "text": "quoted", "name_tag": "Alice"}))
        assert c.quote == Quote(pid=42, text="quoted", name_tag="Alice")

    def test_to_dict_nested_quote(self):
        data = comment(2, quote={"pid": 42, "text": "quoted", "name_tag": "Alice"})
        assert Comment.from_dict(data).to_dict() == data


class TestPage:
    def test_from_dict(self):
        p = Page.from_dict(page([comment(1), comment(2)], current_page=1, last_page=3, per_page=2, total=5),
                           Comment.from_dict)
        assert p.current_page == 1
        assert [c.cid for c in p.data] == [1, 2]
        assert p.from_ == 1
        assert p.to == 2
        assert p.total == 5
        assert p.last_page == 3

    def test_empty_page_has_null_bounds(self):
        p = Page.from_dict(page([]), Comment.from_dict)
        assert p.data == []
        assert p.from_ is None
        assert p.to is None

    def test_data_must_be_list(self):
        data = page([])
        data["data"] = {"0": comment(1)}
        with pytest.raises(MalformedResponse):
            Page.from_dict(data, Comment.from_dict)

    @pytest.mark.parametrize("key", ["current_page", "total", "last_page"])
    @pytest.mark.parametrize("value", [None, "3", 2.0, True])
    def test_counters_must_be_integers(self, key, value):
        data = page([comment(1)], last_page=3)
        data[key] = value
        with pytest.raises(MalformedResponse, match=key):
            Page.from_dict(data, Comment.from_dict)

    def test_to_dict_renames_from(self):
        data = page([comment(1)])
        assert Page.from_dict(data, Comment.from_dict).to_dict() == data


class TestParseResponse:
    def test_success(self):
        response = parse_response(ok(post()), Post.from_dict)
        assert isinstance(response, OkResponse)
        assert response.success is True
        assert response.code == 20000
        assert response.timestamp == 1700000000
        assert response.data.pid == 42
        assert response.unwrap() is response.data

    def test_failure(self):
        response = parse_response(err("未登录", code=40002), Post.from_dict)
        assert isinstance(response, ErrResponse)
        assert response.success is False
        assert response.message == "未登录"
        assert response.code == 40002
        assert not hasattr(response, "data")

    def test_failure_unwrap_raises(self):
        response = parse_response(err("未登录"), Post.from_dict)
        with pytest.raises(ApiFailure) as excinfo:
            response.unwrap()
        assert excinfo.value.message == "未登录"

    def test_missing_success_flag(self):
        with pytest.raises(MalformedResponse):
            parse_response({"code": 0, "message": "?"}, Post.from_dict)

    @pytest.mark.parametrize("key", ["code", "message", "timestamp"])
    def test_missing_envelope_field(self, key):
        payload = err("未登录")
        del payload[key]
        with pytest.raises(MalformedResponse, match=key):
            parse_response(payload, Post.from_dict)

    def test_success_without_data(self):
        payload = ok(None)
        with pytest.raises(MalformedResponse):
            parse_response(payload, Post.from_dict)

    def test_body_not_an_object(self):
        with pytest.raises(MalformedResponse):
            parse_response("<html>", Post.from_dict)

    def test_bad_payload_shape(self):
        with pytest.raises(MalformedResponse):
            parse_response(ok({"pid": 1}), Post.from_dict)


class TestPostWithComments:
    def test_to_dict(self):
        aggregate = PostWithComments(
            post=Post.from_dict(post()),
            comments=[Comment.from_dict(comment(1))],
            users=["洞主", "Alice"],
        )
        d = aggregate.to_dict()
        assert d["post"]["pid"] == 42
        assert d["comments"][0]["cid"] == 1
        assert d["users"] == ["洞主", "Alice"]
