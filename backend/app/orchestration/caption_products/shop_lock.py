"""
按 shop 串行化描述任务（bulk 扫描 和 products/create webhook 不并发写同一个店）。
配置了 REDIS_URL 才加锁；没配时不加锁，同店并发任务 last-write-wins。
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import redis

from app.core.config import settings
from app.orchestration.caption_products.errors import ShopLockTimeoutError


logger = logging.getLogger(__name__)

LOCK_KEY_PREFIX = "caption:shop:"


def _redis() -> Optional["redis.Redis"]:
    url = settings.REDIS_URL
    if not url:
        return None
    return redis.from_url(url, decode_responses=True)


def lock_key(shop_id: str) -> str:
    return f"{LOCK_KEY_PREFIX}{shop_id}"


@contextmanager
def shop_lock(
    shop_id: str,
    *,
    client: Optional["redis.Redis"] = None,
    blocking_timeout: Optional[int] = None,
) -> Iterator[bool]:
    """yield True 表示持有锁，False 表示未启用锁；blocking_timeout 默认 SHOP_LOCK_BLOCKING_TIMEOUT_SEC"""
    r = client if client is not None else _redis()
    if r is None:
        yield False
        return

    lock = r.lock(
        lock_key(shop_id),
        timeout=settings.SHOP_LOCK_TIMEOUT_SEC,          # 自动过期，worker 崩溃也不会永久占用
        blocking_timeout=blocking_timeout or settings.SHOP_LOCK_BLOCKING_TIMEOUT_SEC,
    )
    if not lock.acquire():
        logger.warning("caption.shop_lock.timeout shop=%s", shop_id)
        raise ShopLockTimeoutError(f"caption job already running for shop={shop_id}")

    logger.info("caption.shop_lock.acquired shop=%s", shop_id)
    try:
        yield True
    finally:
        try:
            lock.release()
        except redis.exceptions.LockError:
            # 超过 timeout 锁已自动过期
            logger.warning("caption.shop_lock.expired_before_release shop=%s", shop_id)
