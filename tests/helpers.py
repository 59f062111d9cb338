"""Wire payload builders and a recording transport shared by the tests."""

import asyncio


def ok(data, message="success"):
    return {"code": 20000, "message": message, "timestamp": 1700000000, "success": True, "data": data}


def err(message, code=40001):
    return {"code": code, "message": message, "timestamp": 1700000000, "success": False}


def post(pid=42, text="今天食堂的菜好吃吗"):
    return {
        "pid": pid,
        "text": text,
        "type": "text",
        "timestamp": 1700000000,
        "reply": 3,
        "likenum": 7,
        "anonymous": 1,
        "url": "",
    }


def comment(cid, name="Alice", pid=42, quote=None):
    return {
        "cid": cid,
        "pid": pid,
        "text": f"comment {cid}",
        "comment_id": cid,
        "name": name,
        "quote": quote,
        "timestamp": 1700000000 + cid,
    }


def page(rows, current_page=1, last_page=1, per_page=15, total=None):
    start = (current_page - 1) * per_page + 1
    return {
        "current_page": current_page,
        "data": rows,
        "from": start if rows else None,
        "to": start + len(rows) - 1 if rows else None,
        "total": total if total is not None else len(rows),
        "last_page": last_page,
    }


class RecordingTransport:
    """
    Fake transport answering from a dict keyed by (path, page).

    ``page`` is None for requests without query parameters. Every call is
    recorded, and the highest number of overlapping requests is tracked.
    """

    def __init__(self, responses):
        self.responses = responses
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def get(self, path, params=None):
        self.calls.append((path, dict(params) if params is not None else None))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            key = (path, params["page"] if params else None)
            response = self.responses[key]
            if isinstance(response, Exception):
                raise response
            return response
        finally:
            self.in_flight -= 1

    def pages_requested(self, path):
        return [params["page"] for p, params in self.calls if p == path]
