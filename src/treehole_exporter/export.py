"""
Hand-off of the aggregate to the renderer.

The renderer (outside this package) consumes ``{post, comments, users}``
as JSON. This module writes that file next to where the PDF would go.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import orjson

from .models import PostWithComments
from .utils import export_filename

logger = logging.getLogger(__name__)


def dump_aggregate(aggregate: PostWithComments) -> bytes:
    """Serialize the aggregate as indented UTF-8 JSON (non-ASCII kept as is)."""
    return orjson.dumps(aggregate.to_dict(), option=orjson.OPT_INDENT_2)


def write_aggregate(
    aggregate: PostWithComments,
    output_dir: Union[str, Path],
    now: Optional[datetime] = None,
) -> Path:
    """
    Write the aggregate to ``output_dir`` using an atomic write.

    Returns:
        Path of the written file, e.g. ``output/PKU树洞#42-20240115_103005.json``
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    path = output_dir / export_filename(aggregate.post.pid, now)
    tmp = path.with_suffix(".tmp")
    tmp.write_bytes(dump_aggregate(aggregate))
    tmp.replace(path)

    logger.info("Wrote %s (%d comments, %d users)",
                path, len(aggregate.comments), len(aggregate.users))
    return path
