"""
   Shopify Admin 集成层专用异常类型。
   把 HTTP / GraphQL / 会话缺失等错误和业务层解耦，便于 bulk 任务、webhook 统一处理。
"""

from app.core.exceptions import CaptionConfigError


class ShopifyError(Exception):
    """Base for all Shopify errors."""

class ShopSessionMissingError(ShopifyError, CaptionConfigError):
    """No offline session (access token) stored for the shop."""

class ShopifyRequestError(ShopifyError):
    """HTTP/network failure or top-level GraphQL errors after retries."""

class ShopifyUserError(ShopifyError):
    """Mutation returned userErrors (e.g. invalid product id)."""

    def __init__(self, op_name: str, user_errors: list):
        self.op_name = op_name
        self.user_errors = user_errors
        super().__init__(f"{op_name} userErrors: {user_errors}")

class ShopifyPayloadError(ShopifyError):
    """Unexpected response shape (missing data node)."""
