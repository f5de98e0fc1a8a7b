import json


# 商品字段片段：描述写回 + 列表展示都用这一组
_PRODUCT_FIELDS = """
fragment ProductFields on Product {
  id
  title
  description
  onlineStoreUrl
  onlineStorePreviewUrl
  featuredImage { url }
}
""".strip()


# 游标分页：first/after 向后翻，last/before 向前翻（列表页用）
PRODUCTS_PAGE = """
query ProductsPage($query: String, $first: Int, $after: String, $last: Int, $before: String) {
  products(query: $query, first: $first, after: $after, last: $last, before: $before) {
    nodes { ...ProductFields }
    pageInfo {
      startCursor
      endCursor
      hasNextPage
      hasPreviousPage
    }
  }
}
""".strip() + "\n" + _PRODUCT_FIELDS


PRODUCT_BY_ID = """
query ProductById($id: ID!) {
  product(id: $id) { ...ProductFields }
}
""".strip() + "\n" + _PRODUCT_FIELDS


PRODUCT_UPDATE_DESCRIPTION = """
mutation ProductUpdateDescription($input: ProductInput!) {
  productUpdate(input: $input) {
    product { id title description }
    userErrors { field message }
  }
}
""".strip()


SHOP_PING = """
{
  shop {
    name
    myshopifyDomain
  }
}
""".strip()


def escape_search_value(value: str) -> str:
    """转义放进 Shopify 搜索字符串的值，并统一包裹双引号。"""
    escaped = json.dumps(value or "")[1:-1]
    return f'"{escaped}"'


def title_search_query(term: str) -> str:
    """列表页搜索框 -> products(query:) 语法"""
    term = (term or "").strip()
    if not term:
        return ""
    return f"title:{escape_search_value(term)}"
