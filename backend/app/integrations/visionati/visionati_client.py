"""
Visionati 图片描述 Client（submit -> poll 批量协议）

    1) POST /api/fetch 提交一批图片 URL，拿到 response_uri
    2) 每 1s GET response_uri，直到 status != "processing"
    3) 每个 asset 只取第一条 description，没有描述的 asset 记为 ""
    4) 把返回的剩余 credits 写回 shop 设置；写失败整个调用失败

不做部分结果：任何一次轮询失败都直接抛。条数是否齐全由调用方判断。
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests
from requests import RequestException
from sqlalchemy.orm import Session

from app.core.config import settings
from app.integrations.visionati.errors import (
    VisionatiBatchRejectedError,
    VisionatiConfigError,
    VisionatiPayloadError,
    VisionatiRequestError,
)
from app.integrations.visionati.prompts import (
    DEFAULT_FEATURES,
    build_prompt,
    resolve_backend,
    resolve_role,
)
from app.repository.shop_settings_repo import get_visionati_settings, update_visionati_credits


logger = logging.getLogger(__name__)

PROCESSING = "processing"


@dataclass(frozen=True)
class CaptionSettings:
    shop_id: str
    api_key: str
    backend: str
    role: str
    custom_prompt: Optional[str] = None


SettingsAccessor = Callable[[], CaptionSettings]
CreditsWriter = Callable[[Optional[int]], None]


class VisionatiClient:

    def __init__(
        self,
        settings_accessor: SettingsAccessor,
        credits_writer: CreditsWriter,
        *,
        session: Optional[requests.Session] = None,
        api_url: Optional[str] = None,
        poll_interval: Optional[float] = None,
        timeout: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._settings_accessor = settings_accessor
        self._credits_writer = credits_writer
        self._http = session or requests.Session()
        self._api_url = api_url or settings.VISIONATI_API_URL
        self._poll_interval = settings.VISIONATI_POLL_INTERVAL_SEC if poll_interval is None else poll_interval
        self._timeout = timeout or settings.VISIONATI_HTTP_TIMEOUT
        self._sleep = sleep


    def __call__(self, image_urls: List[str]) -> Dict[str, str]:
        return self.get_image_descriptions(image_urls)


    def get_image_descriptions(self, image_urls: List[str]) -> Dict[str, str]:
        """image url -> description；只包含响应里出现的 asset"""
        cfg = self._settings_accessor()
        response_uri = self._submit(cfg, image_urls)
        body = self._poll(cfg, response_uri)

        descriptions = flatten_assets(body)
        self._write_credits(cfg, body.get("credits"))

        logger.info(
            "visionati.batch.done shop=%s urls=%s descriptions=%s credits=%s",
            cfg.shop_id, len(image_urls), len(descriptions), body.get("credits"),
        )
        return descriptions


    def _headers(self, cfg: CaptionSettings) -> dict:
        return {
            "Authorization": f"Token {cfg.api_key}",
            "Content-Type": "application/json",
        }


    def _submit(self, cfg: CaptionSettings, image_urls: List[str]) -> str:
        payload: Dict[str, Any] = {
            "feature": list(DEFAULT_FEATURES),
            "role": cfg.role,
            "backend": cfg.backend,
            "prompt": build_prompt(cfg.role, cfg.custom_prompt),
            "url": list(image_urls),
        }

        try:
            resp = self._http.post(self._api_url, headers=self._headers(cfg), json=payload, timeout=self._timeout)
        except RequestException as e:
            logger.warning("visionati.submit.request_exception shop=%s err=%s", cfg.shop_id, type(e).__name__)
            raise VisionatiRequestError(f"Visionati submit failed: {type(e).__name__}") from e

        if not resp.ok:
            logger.warning("visionati.submit.http_error shop=%s status=%s", cfg.shop_id, resp.status_code)
            raise VisionatiRequestError(
                f"Visionati request failed with status {resp.status_code}", status_code=resp.status_code
            )

        body = _json_or_raise(resp, "submit")
        response_uri = body.get("response_uri")
        if not body.get("success") or body.get("error") or not response_uri:
            logger.warning("visionati.submit.rejected shop=%s error=%s", cfg.shop_id, body.get("error"))
            raise VisionatiBatchRejectedError(body.get("error") or "Visionati request failed")

        logger.info("visionati.submit.ok shop=%s urls=%s backend=%s role=%s",
            cfg.shop_id, len(image_urls), cfg.backend, cfg.role)
        return response_uri


    def _poll(self, cfg: CaptionSettings, response_uri: str) -> Dict[str, Any]:
        # 无客户端超时：一直轮询到后端给出结果或报错
        attempt = 0
        while True:
            attempt += 1
            try:
                resp = self._http.get(response_uri, headers=self._headers(cfg), timeout=self._timeout)
            except RequestException as e:
                logger.warning("visionati.poll.request_exception shop=%s attempt=%s err=%s",
                    cfg.shop_id, attempt, type(e).__name__)
                raise VisionatiRequestError(f"Visionati poll failed: {type(e).__name__}") from e

            if not resp.ok:
                logger.warning("visionati.poll.http_error shop=%s attempt=%s status=%s",
                    cfg.shop_id, attempt, resp.status_code)
                raise VisionatiRequestError("Visionati API Request Failed", status_code=resp.status_code)

            body = _json_or_raise(resp, "poll")
            if body.get("error"):
                logger.warning("visionati.poll.error shop=%s attempt=%s error=%s", cfg.shop_id, attempt, body["error"])
                raise VisionatiPayloadError(str(body["error"]))

            if body.get("status") != PROCESSING:
                return body

            logger.debug("visionati.poll.processing shop=%s attempt=%s", cfg.shop_id, attempt)
            self._sleep(self._poll_interval)


    def _write_credits(self, cfg: CaptionSettings, credits: Any) -> None:
        if credits is None:
            logger.warning("visionati.credits.missing shop=%s", cfg.shop_id)
            return
        try:
            value = int(credits)
        except (TypeError, ValueError) as e:
            raise VisionatiPayloadError(f"invalid credits value: {credits!r}") from e
        # 写失败直接抛：描述已经拿到也算整次调用失败
        self._credits_writer(value)



def _json_or_raise(resp: requests.Response, stage: str) -> Dict[str, Any]:
    try:
        body = resp.json()
    except ValueError as e:
        raise VisionatiPayloadError(f"Visionati {stage} response is not JSON") from e
    if not isinstance(body, dict):
        raise VisionatiPayloadError(f"Visionati {stage} response is not an object")
    return body


def flatten_assets(body: Dict[str, Any]) -> Dict[str, str]:
    """asset.name(url) -> 第一条 description；重复 name 时保留第一个"""
    assets = ((body.get("all") or {}).get("assets")) or []
    out: Dict[str, str] = {}
    for asset in assets:
        name = (asset or {}).get("name")
        if not name:
            continue
        descriptions = asset.get("descriptions") or []
        first = (descriptions[0] or {}).get("description") if descriptions else None
        out.setdefault(name, first or "")
    return out



def visionati_client_for_shop(db: Session, shop_id: str, **client_kwargs: Any) -> VisionatiClient:
    """
    按 shop 构造 client：
      - 设置每次调用前重新读（role/backend/prompt 可能被商家改过）
      - credits 写回同一个 db session 并提交
    没有 api key / role、backend 非法时同步抛 VisionatiConfigError
    """

    def settings_accessor() -> CaptionSettings:
        row = get_visionati_settings(db, shop_id)
        api_key = (row.api_key if row else None) or settings.visionati_api_key
        if not api_key:
            raise VisionatiConfigError(f"no visionati api key configured for shop={shop_id}")
        return CaptionSettings(
            shop_id=shop_id,
            api_key=api_key,
            role=resolve_role((row.role if row else None) or settings.VISIONATI_DEFAULT_ROLE),
            backend=resolve_backend((row.backend if row else None) or settings.VISIONATI_DEFAULT_BACKEND),
            custom_prompt=row.custom_prompt if row else None,
        )

    def credits_writer(credits: Optional[int]) -> None:
        update_visionati_credits(db, shop_id, credits)

    settings_accessor()  # fail fast
    return VisionatiClient(settings_accessor, credits_writer, **client_kwargs)
