from __future__ import annotations

import re
from datetime import datetime

from pvexplorer.utils import Now

CHECKPOINT_SUFFIX = ".state.json"
_TIMESTAMP_PATTERN = r"\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{6}Z"


def format_checkpoint_timestamp(saved_at: datetime) -> str:
    """ISO 8601 UTC with ``:`` and ``.`` replaced by ``-`` (filesystem safe)."""
    utc = Now.to_utc(saved_at) or Now.as_datetime()
    stamp = utc.strftime("%Y-%m-%dT%H:%M:%S.%f") + "Z"
    return stamp.replace(":", "-").replace(".", "-")


def build_checkpoint_filename(session_id: str, saved_at: datetime) -> str:
    return f"{session_id}-{format_checkpoint_timestamp(saved_at)}{CHECKPOINT_SUFFIX}"


def checkpoint_filename_pattern(session_id: str | None = None) -> re.Pattern[str]:
    """Match snapshot names; group ``session`` and ``stamp`` are captured."""
    session = re.escape(session_id) if session_id else r".+"
    return re.compile(
        rf"^(?P<session>{session})-(?P<stamp>{_TIMESTAMP_PATTERN}){re.escape(CHECKPOINT_SUFFIX)}$"
    )
