"""跨集成共享的异常基类"""


class CaptionConfigError(Exception):
    """
    配置类错误：shop 没有 session、没有 Visionati api key、role/backend 非法等。
    在任何远程调用之前同步抛出；API 层映射为 400。
    """
