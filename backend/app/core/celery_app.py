# Celery 应用：bulk 描述任务 + webhook 单商品任务

from celery import Celery
from kombu import Exchange, Queue
from app.core.config import settings
from app.core.logging import configure_logging

configure_logging()


'''
初始化 Celery 应用/实例
   - bulk 任务可能跑很久（整店扫描 + Visionati 轮询），单独一个队列
   - webhook 任务短，单独队列，避免被 bulk 堵住
'''
celery_app = Celery(
    "image_captioner",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "app.orchestration.caption_products.bulk_update_task",
        "app.orchestration.caption_products.product_create_task",
    ],
)


celery_app.conf.update(
    timezone=settings.CELERY_TIMEZONE,
    enable_utc=True,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_track_started=True,
    broker_connection_retry_on_startup=True,
    # === 容错和超时控制 ===
    worker_prefetch_multiplier=1,    # 一个 worker 一次只取一个任务
    # bulk 任务不开 acks_late：重投会再建一轮扫描、重复消耗 credits
    task_acks_late=False,
    broker_heartbeat=30,
    broker_pool_limit=10,
)


celery_app.conf.task_queues = (
    Queue("default", Exchange("default"), routing_key="default"),
    Queue("caption_bulk", Exchange("caption_bulk"), routing_key="caption_bulk"),         # 整店/多商品描述
    Queue("caption_webhook", Exchange("caption_webhook"), routing_key="caption_webhook"), # products/create
)


celery_app.conf.task_routes = {
    "caption_products.run_bulk_update": {"queue": "caption_bulk"},
    "caption_products.handle_product_create": {"queue": "caption_webhook"},
}
