from __future__ import annotations
from datetime import datetime, timezone


def now_utc() -> datetime:
    """审计行 / bulk 任务的时间列统一存 naive UTC（sqlite 测试和 postgres 一致）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
