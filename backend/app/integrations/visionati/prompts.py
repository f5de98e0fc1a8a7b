"""
Visionati 角色（role）-> prompt 固定表 + 通用尾巴（boilerplate）。
描述类 backend 才支持 prompt；tagging 类只出标签，描述流水线不使用。
"""
from __future__ import annotations

from typing import Dict, Optional, Tuple

from app.integrations.visionati.errors import VisionatiConfigError


DEFAULT_ROLE = "ecommerce"
DEFAULT_BACKEND = "gemini"
DEFAULT_FEATURES = ["descriptions"]


DESCRIPTION_BACKENDS: Tuple[str, ...] = ("llava", "bakllava", "jinaai", "gemini", "claude", "openai")
TAGGING_BACKENDS: Tuple[str, ...] = ("clarifai", "googlevision", "imagga", "rekognition")
BACKENDS: Tuple[str, ...] = DESCRIPTION_BACKENDS + TAGGING_BACKENDS


def _oneline(text: str) -> str:
    return " ".join(text.split())


ROLE_PROMPTS: Dict[str, str] = {
    "artist": _oneline("""
        Analyze this image from an artist's perspective in English. Describe the
        composition, color palette, mood, and artistic techniques. Mention recognizable
        figures, places, or landmarks, and the artist's name if known. Provide only the
        artistic analysis.
    """),
    "caption": _oneline("""
        Write a succinct, engaging caption for this image in English. Capture its essence,
        including identifiable people, places, or objects. Your response should be strictly
        the caption, with no additional text.
    """),
    "comedian": _oneline("""
        In English, craft a quick, witty joke about this image. Base your humor on the
        visual elements or the situation presented. Respond with just the joke itself.
    """),
    "critic": _oneline("""
        Critique this image in English, applicable to any visual media. Address composition,
        technique, subject matter, emotional impact, and context. Include the creator's name
        and background if known. Focus solely on the critique.
    """),
    "general": _oneline("""
        Describe this image in English. Cover the main subject, setting, colors, and any
        visible text. Mention identifiable people, places, or brands by name. Provide only
        the description.
    """),
    "ecommerce": _oneline("""
        Describe this product in English for an ecommerce context. Highlight key features,
        benefits, functionality, design, and selling points. If known, include brand or
        designer names. Restrict your response to the product description.
    """),
    "inspector": _oneline("""
        Inspect this image in detail in English. Describe every element, such as objects,
        background features, and living entities. Mention identifiable people, landmarks,
        or brands by name. Focus exclusively on the inspection details.
    """),
    "promoter": _oneline("""
        Promote the subject of this image in English. Emphasize its positive aspects, unique
        qualities, and appeal. Mention well-known people, places, or products by name.
        Provide only the promotional content.
    """),
    "prompt": _oneline("""
        Craft a descriptive prompt in English for text-to-image services like Midjourney,
        DALL-E, and others, to accurately recreate this image. Focus on essential elements
        such as layout, colors, objects, and figures. If the image contains the word 'prompt'
        then ignore that text. Provide only the prompt.
    """),
    "realtor": _oneline("""
        Provide a detailed real estate overview of this property in English. Cover room
        layout, architectural style, design elements, and selling points. If recognizable,
        mention the location and neighborhood. Focus only on the property description.
    """),
    "tweet": _oneline("""
        Compose an engaging tweet about this image in English. Highlight its most striking
        aspect. Include names of recognizable people or places. Use a select few relevant
        hashtags and emojis. Limit your response to the tweet content.
    """),
}

ROLES: Tuple[str, ...] = tuple(ROLE_PROMPTS)


PROMPT_BOILERPLATE = _oneline("""
    The description should be concise using no more than 500 words and use affirmative
    language with no ambiguous words such as might, should, or may. Include relevant
    keywords for SEO. Use HTML tags for any formatting and do not use any markdown, emojis,
    or special characters. Do not attempt to name the product in the image.
""")


def resolve_role(role: Optional[str]) -> str:
    role = (role or DEFAULT_ROLE).strip().lower()
    if role not in ROLE_PROMPTS:
        raise VisionatiConfigError(f"unknown visionati role: {role!r}")
    return role


def resolve_backend(backend: Optional[str]) -> str:
    backend = (backend or DEFAULT_BACKEND).strip().lower()
    if backend not in DESCRIPTION_BACKENDS:
        # tagging backend 不返回 descriptions，描述流水线拿到的全是空串
        raise VisionatiConfigError(f"visionati backend {backend!r} does not produce descriptions")
    return backend


def build_prompt(role: Optional[str], custom_prompt: Optional[str] = None) -> str:
    """custom_prompt 非空时覆盖 role 的 prompt；两者都接上 boilerplate"""
    custom = (custom_prompt or "").strip()
    head = custom if custom else ROLE_PROMPTS[resolve_role(role)]
    return f"{head} {PROMPT_BOILERPLATE}"
