from app.integrations.shopify.product_types import Product
from app.repository.description_update_repo import create_description_update
from app.services.product_annotation_service import (
    DescriptionState,
    ProductFilter,
    classify_description,
    list_annotated_products,
    partition_by_ai_description,
    stripped_equal,
    stripped_text,
)


SHOP = "annotate.myshopify.com"


def test_stripped_equality_ignores_markup_and_punctuation():
    html = "<p>Gray Knit Beanie</p>"
    assert stripped_text(html) == "GrayKnitBeanie"
    assert stripped_equal(html, "Gray Knit Beanie!")
    assert stripped_equal("<h2>Warm &amp; soft</h2>", "Warm amp soft")
    assert not stripped_equal("<p>Gray Knit Beanie</p>", "Grey Knit Beanie")
    assert stripped_equal(None, "")


def test_classify_description_states():
    assert classify_description("", None) is DescriptionState.NONE
    assert classify_description("Hand made", None) is DescriptionState.NO_AI
    assert classify_description("Gray Knit Beanie", "<p>Gray Knit Beanie</p>") is DescriptionState.AI
    assert classify_description("Something else", "<p>Gray Knit Beanie</p>") is DescriptionState.PENDING_AI
    assert classify_description("", "<p>Gray Knit Beanie</p>") is DescriptionState.PENDING_AI


def _seed(db, product_factory):
    """1: 没有 AI；2: AI 已采用；3: AI 未采用；4: 没有描述"""
    adopted = Product(id="gid://shopify/Product/2", title="Beanie", description="Gray Knit Beanie",
                      featured_image_url="https://cdn.shopify.com/p2.jpg")
    products = [
        product_factory(1),
        adopted,
        product_factory(3),
        Product(id="gid://shopify/Product/4", title="Blank"),
    ]
    create_description_update(db, shop_id=SHOP, product_id=adopted.id,
                              old_description="", new_description="<p>Gray Knit Beanie</p>")
    create_description_update(db, shop_id=SHOP, product_id=products[2].id,
                              old_description="Old description 3", new_description="<p>Brand new copy</p>")
    return products


def test_partition_is_disjoint_and_exhaustive(db, product_factory):
    products = _seed(db, product_factory)

    has, has_not = partition_by_ai_description(db, SHOP, products)

    assert [p.id for p in has] == ["gid://shopify/Product/2", "gid://shopify/Product/3"]
    assert [p.id for p in has_not] == ["gid://shopify/Product/1", "gid://shopify/Product/4"]
    assert {p.id for p in has}.isdisjoint({p.id for p in has_not})
    assert len(has) + len(has_not) == len(products)


def test_audit_rows_are_scoped_to_shop(db, product_factory):
    products = _seed(db, product_factory)
    has, _ = partition_by_ai_description(db, "other.myshopify.com", products)
    assert has == []


def test_all_products_tab_annotates_one_page(db, fake_shopify_cls, product_factory):
    products = _seed(db, product_factory)
    shopify = fake_shopify_cls([products[:2], products[2:]])

    page = list_annotated_products(db, shopify.get_products, shop_id=SHOP, page_size=10)

    assert [(a.product.id, a.state) for a in page.products] == [
        ("gid://shopify/Product/1", DescriptionState.NO_AI),
        ("gid://shopify/Product/2", DescriptionState.AI),
    ]
    assert page.products[1].ai_description == "<p>Gray Knit Beanie</p>"
    assert page.page_info.has_next_page is True
    assert shopify.fetch_calls == [{"query": None, "first": 10, "after": None, "last": None, "before": None}]


def test_all_products_tab_pages_backwards_with_before(db, fake_shopify_cls, product_factory):
    shopify = fake_shopify_cls([[product_factory(1)]])
    list_annotated_products(db, shopify.get_products, shop_id=SHOP, before="0", page_size=10)
    assert shopify.fetch_calls[0]["last"] == 10
    assert shopify.fetch_calls[0]["before"] == "0"
    assert shopify.fetch_calls[0]["first"] is None


def test_filtered_tabs_scan_whole_catalog(db, fake_shopify_cls, product_factory):
    products = _seed(db, product_factory)

    def ids(product_filter):
        shopify = fake_shopify_cls([products[:2], products[2:]])
        page = list_annotated_products(
            db, shopify.get_products, shop_id=SHOP, product_filter=product_filter, scan_page_size=2,
        )
        assert len(shopify.fetch_calls) == 2
        assert page.page_info.has_next_page is False
        return [a.product.id for a in page.products]

    assert ids(ProductFilter.NO_AI_DESCRIPTIONS) == ["gid://shopify/Product/1", "gid://shopify/Product/4"]
    assert ids(ProductFilter.AI_DESCRIPTIONS) == ["gid://shopify/Product/2"]
    assert ids(ProductFilter.PENDING_AI_DESCRIPTIONS) == ["gid://shopify/Product/3"]
