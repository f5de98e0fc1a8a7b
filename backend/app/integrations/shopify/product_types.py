from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Product:
    id: str
    title: str = ""
    description: str = ""
    featured_image_url: Optional[str] = None
    online_store_url: Optional[str] = None
    online_store_preview_url: Optional[str] = None

    @classmethod
    def from_node(cls, node: Dict[str, Any]) -> "Product":
        image = node.get("featuredImage") or {}
        return cls(
            id=node["id"],
            title=node.get("title") or "",
            description=node.get("description") or "",
            featured_image_url=image.get("url") or None,
            online_store_url=node.get("onlineStoreUrl"),
            online_store_preview_url=node.get("onlineStorePreviewUrl"),
        )


@dataclass(frozen=True)
class PageInfo:
    start_cursor: Optional[str] = None
    end_cursor: Optional[str] = None
    has_next_page: bool = False
    has_previous_page: bool = False

    @classmethod
    def from_node(cls, node: Optional[Dict[str, Any]]) -> "PageInfo":
        node = node or {}
        return cls(
            start_cursor=node.get("startCursor"),
            end_cursor=node.get("endCursor"),
            has_next_page=bool(node.get("hasNextPage")),
            has_previous_page=bool(node.get("hasPreviousPage")),
        )


@dataclass(frozen=True)
class ProductConnection:
    nodes: List[Product] = field(default_factory=list)
    page_info: PageInfo = field(default_factory=PageInfo)
