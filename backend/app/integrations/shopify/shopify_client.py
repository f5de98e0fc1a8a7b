"""面向 Admin GraphQL 的轻量 Client（按 shop 实例化），只放描述流水线用到的方法"""
from __future__ import annotations

import time, logging, requests
from typing import Any, Dict, Optional
from requests import HTTPError, Timeout, RequestException
from sqlalchemy.orm import Session

from app.core.config import settings
from app.integrations.shopify.errors import (
    ShopifyPayloadError,
    ShopifyRequestError,
    ShopifyUserError,
    ShopSessionMissingError,
)
from app.integrations.shopify.graphql_queries import (
    PRODUCTS_PAGE,
    PRODUCT_BY_ID,
    PRODUCT_UPDATE_DESCRIPTION,
    SHOP_PING,
)
from app.integrations.shopify.product_types import PageInfo, Product, ProductConnection
from app.repository.shop_settings_repo import get_shop_session


logger = logging.getLogger(__name__)


class ShopifyClient:

    def __init__(self, shop: str, access_token: str, *, session: Optional[requests.Session] = None):
        if not shop or not access_token:
            raise ShopSessionMissingError(f"missing shop session for shop={shop!r}")
        self.shop = shop
        self._access_token = access_token
        self._http = session or requests.Session()

    # 统一 GraphQL Admin API 入口: graphql.json 表示走 GraphQL Admin API
    def _graphql_endpoint(self) -> str:
        return f"https://{self.shop}/admin/api/{settings.SHOPIFY_API_VERSION}/graphql.json"

    def _auth_headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": self._access_token,
            "User-Agent": "ImageCaptioner/ShopifyClient (+python)",
        }


    '''
    通用 GraphQL POST（带日志 + 重试) 调用 Admin GraphQL 的公共逻辑
        - 返回完整 data（上层自己从 data[...] 取需要的节点）
        异常处理:
           1) HTTP 5xx/网络异常/非 JSON 做指数退避重试
           2) HTTP 4xx 不重试（直接抛）
           3) 429 按 Retry-After 退避重试
           4) 顶层 GraphQL errors 直接抛，不重试
        重试用尽后统一抛 ShopifyRequestError
    '''
    def _post_graphql(
        self,
        query: str,
        variables: Optional[dict] = None,
        *,
        timeout: Optional[int] = None,
        op_name: str = "",
    ) -> dict:

        timeout = timeout or settings.SHOPIFY_HTTP_TIMEOUT
        max_retries = max(0, int(settings.SHOPIFY_HTTP_RETRIES))
        backoff_ms = max(50, int(settings.SHOPIFY_HTTP_BACKOFF_MS))

        payload = {"query": query, "variables": variables or {}}
        # 不打印 query 全文，仅打 op_name / 变量键
        safe_vars_keys = list(payload["variables"].keys())

        for attempt in range(max_retries + 1):
            start = time.perf_counter()
            try:
                resp = self._http.post(
                    self._graphql_endpoint(),
                    headers=self._auth_headers(),
                    json=payload,
                    timeout=timeout,
                )
                latency_ms = int((time.perf_counter() - start) * 1000)

                try:
                    resp.raise_for_status()
                except HTTPError as e:
                    status = resp.status_code

                    if status == 429 and attempt < max_retries:
                        retry_after = resp.headers.get("Retry-After")
                        try:
                            sleep_s = max(0.1, float(retry_after))
                        except (TypeError, ValueError):
                            sleep_s = (backoff_ms / 1000.0) * (2 ** attempt)
                        logger.warning(
                            "shopify.graphql.429_throttled shop=%s op=%s latency_ms=%s attempt=%s/%s retry_after=%s",
                            self.shop, op_name, latency_ms, attempt, max_retries, retry_after)
                        time.sleep(sleep_s)
                        continue

                    logger.warning(
                        "shopify.graphql.http_error shop=%s op=%s status=%s latency_ms=%s attempt=%s/%s",
                        self.shop, op_name, status, latency_ms, attempt, max_retries)

                    if 500 <= status < 600 and attempt < max_retries:
                        time.sleep((backoff_ms / 1000.0) * (2 ** attempt))
                        continue
                    raise ShopifyRequestError(f"{op_name} failed with HTTP {status}") from e

                try:
                    data = resp.json()
                except ValueError:
                    if attempt < max_retries:
                        logger.warning("shopify.graphql.non_json shop=%s op=%s attempt=%s/%s",
                            self.shop, op_name, attempt, max_retries)
                        time.sleep((backoff_ms / 1000.0) * (2 ** attempt))
                        continue
                    raise ShopifyRequestError(f"GraphQL response is not JSON: status={resp.status_code}")

                # 顶层 errors 多为语法/权限问题，直接抛出不重试
                if data.get("errors"):
                    logger.error(
                        "shopify.graphql.gql_errors shop=%s op=%s latency_ms=%s attempt=%s/%s errors=%s",
                        self.shop, op_name, latency_ms, attempt, max_retries, data["errors"])
                    raise ShopifyRequestError(f"GraphQL top-level errors: {data['errors']}")

                logger.info("shopify.graphql.ok shop=%s op=%s latency_ms=%s attempt=%s vars=%s",
                    self.shop, op_name, latency_ms, attempt, safe_vars_keys)
                return data

            except Timeout as e:
                latency_ms = int((time.perf_counter() - start) * 1000)
                logger.warning("shopify.graphql.timeout shop=%s op=%s latency_ms=%s attempt=%s/%s",
                    self.shop, op_name, latency_ms, attempt, max_retries)
                if attempt == max_retries:
                    raise ShopifyRequestError(f"{op_name} timed out") from e
                time.sleep((backoff_ms / 1000.0) * (2 ** attempt))

            except RequestException as e:
                latency_ms = int((time.perf_counter() - start) * 1000)
                logger.warning("shopify.graphql.request_exception shop=%s op=%s latency_ms=%s attempt=%s/%s err=%s",
                    self.shop, op_name, latency_ms, attempt, max_retries, type(e).__name__)
                if attempt == max_retries:
                    raise ShopifyRequestError(f"{op_name} request failed: {type(e).__name__}") from e
                time.sleep((backoff_ms / 1000.0) * (2 ** attempt))

        # 只有 max_retries 次都 continue 才会走到这里
        raise ShopifyRequestError(f"{op_name} failed after {max_retries} retries")


    # 基础连通性探测（token/域名/版本是否正确）
    def ping(self) -> dict:
        return self._post_graphql(SHOP_PING, op_name="shop.ping")


    def get_products(
        self,
        *,
        query: Optional[str] = None,
        first: Optional[int] = None,
        after: Optional[str] = None,
        last: Optional[int] = None,
        before: Optional[str] = None,
    ) -> ProductConnection:
        """
        一页商品（nodes + pageInfo）。
        first/after 向后翻页；last/before 向前翻页（二选一，都不给时默认 first=LISTING_PAGE_SIZE）。
        """
        if first is None and last is None:
            first = settings.LISTING_PAGE_SIZE

        variables: Dict[str, Any] = {
            "query": query or None,
            "first": first,
            "after": after,
            "last": last,
            "before": before,
        }
        data = self._post_graphql(PRODUCTS_PAGE, variables, op_name="products")
        conn = (data.get("data") or {}).get("products")
        if conn is None:
            raise ShopifyPayloadError(f"products connection missing in response for shop={self.shop}")

        return ProductConnection(
            nodes=[Product.from_node(n) for n in conn.get("nodes") or []],
            page_info=PageInfo.from_node(conn.get("pageInfo")),
        )


    def get_product(self, product_id: str) -> Optional[Product]:
        """按 GID 读单个商品；不存在时返回 None"""
        data = self._post_graphql(PRODUCT_BY_ID, {"id": product_id}, op_name="product")
        node = (data.get("data") or {}).get("product")
        return Product.from_node(node) if node else None


    def update_product_description(self, product_id: str, description_html: str) -> Product:
        """
        productUpdate(input:{id, descriptionHtml})
        userErrors 非空视为失败（直接抛，不重试）
        """
        data = self._post_graphql(
            PRODUCT_UPDATE_DESCRIPTION,
            {"input": {"id": product_id, "descriptionHtml": description_html}},
            op_name="productUpdate",
        )
        result = (data.get("data") or {}).get("productUpdate") or {}
        user_errors = result.get("userErrors") or []
        if user_errors:
            logger.warning("shopify.product_update.user_errors shop=%s product=%s errors=%s",
                self.shop, product_id, user_errors)
            raise ShopifyUserError("productUpdate", user_errors)

        node = result.get("product")
        if not node:
            raise ShopifyPayloadError(f"productUpdate returned no product for {product_id}")
        return Product.from_node(node)



def shopify_client_for_shop(db: Session, shop: str) -> ShopifyClient:
    """
    用 shop 的离线 session 构造 client。
    没有 session 属于配置错误：同步抛出，不进后台任务。
    """
    sess = get_shop_session(db, shop)
    if sess is None or not sess.access_token:
        raise ShopSessionMissingError(f"no session found for shop={shop}")
    return ShopifyClient(sess.shop, sess.access_token)
