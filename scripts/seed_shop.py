#!/usr/bin/env python3
from __future__ import annotations
import argparse

from app.db.session import session_scope
from app.integrations.visionati.prompts import BACKENDS, ROLES
from app.repository.shop_settings_repo import (
    set_auto_image_descriptions,
    upsert_shop_session,
    upsert_visionati_settings,
)


'''
本地 / 预发环境手动写入一个 shop 的配置（正式环境由 OAuth 安装流程写 session）
    - shop session（离线 access token）
    - Visionati 设置（api key / backend / role / 自定义 prompt）
    - products/create 自动描述开关
    用法：
    PYTHONPATH=backend python scripts/seed_shop.py my-shop.myshopify.com \
        --token shpat_xxx --visionati-key vk_xxx --role ecommerce --auto
'''
def main():
    ap = argparse.ArgumentParser(description="Seed shop session and Visionati settings.")
    ap.add_argument("shop", help="xxx.myshopify.com")
    ap.add_argument("--token", required=True, help="Shopify offline access token")
    ap.add_argument("--scope", default=None)
    ap.add_argument("--visionati-key", default=None, help="不填则使用全局 VISIONATI_API_KEY")
    ap.add_argument("--backend", choices=BACKENDS, default=None)
    ap.add_argument("--role", choices=ROLES, default=None)
    ap.add_argument("--prompt", default=None, help="自定义 prompt（覆盖 role 的 prompt）")
    ap.add_argument("--auto", action="store_true", help="开启 products/create 自动描述")
    args = ap.parse_args()

    with session_scope() as db:
        upsert_shop_session(db, args.shop, args.token, scope=args.scope)
        upsert_visionati_settings(
            db,
            args.shop,
            api_key=args.visionati_key,
            backend=args.backend,
            role=args.role,
            custom_prompt=args.prompt,
        )
        set_auto_image_descriptions(db, args.shop, args.auto)
    print(f"shop {args.shop} seeded (auto_image_descriptions={args.auto})")


if __name__ == "__main__":
    main()
