"""
Posting rules: per-platform detail validation, hashtag normalisation and the
keep-in-queue loop that lets one analysis be published to several platforms.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from urllib.parse import urlparse

from app.domain.errors import StageMismatch, ValidationError
from app.domain.production.state_machine import TransitionPlan
from app.models.analysis import PostingPlatform, ProductionStage

HEADING_REQUIRED_PLATFORMS = frozenset(
    {PostingPlatform.YOUTUBE_SHORTS, PostingPlatform.YOUTUBE_VIDEO, PostingPlatform.TIKTOK}
)

POSTING_DETAIL_FIELDS = (
    "posting_platform",
    "posting_caption",
    "posting_heading",
    "posting_hashtags",
    "scheduled_post_time",
)


@dataclass(slots=True, frozen=True)
class PostingDetails:
    platform: PostingPlatform
    caption: str
    heading: str | None
    hashtags: list[str]
    scheduled_post_time: datetime | None

    def as_columns(self) -> dict[str, Any]:
        return {
            "posting_platform": self.platform,
            "posting_caption": self.caption,
            "posting_heading": self.heading,
            "posting_hashtags": self.hashtags or None,
            "scheduled_post_time": self.scheduled_post_time,
        }


def normalize_hashtags(values: Iterable[str] | None) -> list[str]:
    tags: list[str] = []
    for raw in values or []:
        tag = (raw or "").strip().lstrip("#").strip()
        if tag:
            tags.append(tag)
    return tags


def parse_platform(value: str | PostingPlatform | None) -> PostingPlatform:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("Platform selection is required")
    if isinstance(value, PostingPlatform):
        return value
    try:
        return PostingPlatform(value.strip().upper())
    except ValueError as exc:
        raise ValidationError(
            "Unsupported posting platform",
            details={"platform": value, "allowed": [item.value for item in PostingPlatform]},
        ) from exc


def validate_posting_details(
    *,
    platform: str | PostingPlatform | None,
    caption: str | None,
    heading: str | None = None,
    hashtags: Iterable[str] | None = None,
    scheduled_post_time: datetime | None = None,
) -> PostingDetails:
    parsed = parse_platform(platform)
    cleaned_caption = (caption or "").strip()
    if not cleaned_caption:
        raise ValidationError("Caption is required")
    cleaned_heading = (heading or "").strip() or None
    if parsed in HEADING_REQUIRED_PLATFORMS and not cleaned_heading:
        raise ValidationError("Heading/title is required for YouTube and TikTok posts")
    return PostingDetails(
        platform=parsed,
        caption=cleaned_caption,
        heading=cleaned_heading,
        hashtags=normalize_hashtags(hashtags),
        scheduled_post_time=scheduled_post_time,
    )


def validate_posted_url(value: str | None) -> str:
    url = (value or "").strip()
    if not url:
        raise ValidationError("Posted URL is required")
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValidationError("Please enter a valid URL")
    return url


def assert_ready_to_post(stage: ProductionStage | None) -> None:
    if stage != ProductionStage.READY_TO_POST:
        raise StageMismatch(
            "This project is not ready to post",
            details={"from_state": stage.value if stage else None},
        )


def plan_mark_posted(
    *,
    stage: ProductionStage | None,
    posted_urls: list[dict] | None,
    posted_url: str | None,
    keep_in_queue: bool,
    now: datetime,
) -> TransitionPlan:
    """Every call appends one `{url, posted_at}` entry; only keep_in_queue=False leaves READY_TO_POST."""
    assert_ready_to_post(stage)
    url = validate_posted_url(posted_url)
    entry = {"url": url, "posted_at": now.isoformat()}
    history = [*(posted_urls or []), entry]

    updates: dict[str, Any] = {"posted_urls": history}
    if keep_in_queue:
        updates.update({name: None for name in POSTING_DETAIL_FIELDS})
        to_stage = ProductionStage.READY_TO_POST
    else:
        updates.update(
            {
                "production_stage": ProductionStage.POSTED,
                "posted_url": url,
                "posted_at": now,
                "production_completed_at": now,
            }
        )
        to_stage = ProductionStage.POSTED

    return TransitionPlan(
        from_stage=stage,
        to_stage=to_stage,
        updates=updates,
    )
