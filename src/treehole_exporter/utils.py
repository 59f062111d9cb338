"""
Utility functions for the Treehole exporter.

Small helpers shared by the client, the exporter and the CLI.
"""

import re
from datetime import datetime
from typing import Iterable, List, Optional, Union

from .models import Comment

# Display name the Treehole UI uses for the post's own author
AUTHOR_SENTINEL = "洞主"


def parse_pid(value: Union[str, int]) -> Optional[int]:
    """
    Extract a post identifier from user input.

    Accepts a bare number (``"12345"``) or any text carrying ``#12345``,
    such as the title bar of the post detail view (``"#12345 ..."``).

    Returns:
        The positive pid, or None when nothing usable is found

    Example:
        parse_pid("树洞 #7654321 收藏")
        # Returns: 7654321
    """
    if isinstance(value, int):
        return value if value > 0 else None

    text = value.strip()
    match = re.search(r"#(\d+)", text) or re.fullmatch(r"(\d+)", text)
    if not match:
        return None
    pid = int(match.group(1))
    return pid if pid > 0 else None


def collect_users(comments: Iterable[Comment]) -> List[str]:
    """
    Build the participant list for a thread.

    The post author sentinel comes first, followed by every distinct
    non-empty comment author name in order of first appearance.
    """
    users = [AUTHOR_SENTINEL]
    seen = {AUTHOR_SENTINEL}
    for comment in comments:
        if comment.name and comment.name not in seen:
            seen.add(comment.name)
            users.append(comment.name)
    return users


def export_filename(pid: int, now: Optional[datetime] = None, suffix: str = ".json") -> str:
    """
    Generate the download file name for an exported post.

    Example:
        export_filename(42, datetime(2024, 1, 15, 10, 30, 5))
        # Returns: "PKU树洞#42-20240115_103005.json"
    """
    now = now or datetime.now()
    return f"PKU树洞#{pid}-{now.strftime('%Y%m%d_%H%M%S')}{suffix}"
