import argparse
import json

from app.db.session import session_scope
from app.integrations.shopify.shopify_client import shopify_client_for_shop


def main():
    ap = argparse.ArgumentParser(description="Ping Shopify Admin API with a stored shop session.")
    ap.add_argument("shop", help="xxx.myshopify.com")
    args = ap.parse_args()

    with session_scope() as db:
        cli = shopify_client_for_shop(db, args.shop)
    data = cli.ping()
    print(json.dumps(data, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()


# 运行
# export $(grep -v '^#' .env | xargs)   # 若你用 .env
# PYTHONPATH=backend python scripts/ping_shopify.py my-shop.myshopify.com

# 看到返回 shop.name / myshopifyDomain 说明域名、版本、token 都 OK
