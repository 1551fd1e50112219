from datetime import datetime, timezone

import pytest

from app.domain.errors import StageMismatch, ValidationError
from app.domain.posting.rules import normalize_hashtags, plan_mark_posted, validate_posting_details
from app.models import PostingPlatform, ProductionStage

NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)


def test_heading_required_for_youtube_and_tiktok() -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_posting_details(platform="TIKTOK", caption="New drop")
    assert exc_info.value.message == "Heading/title is required for YouTube and TikTok posts"

    details = validate_posting_details(platform="instagram_reel", caption=" New drop ")
    assert details.platform == PostingPlatform.INSTAGRAM_REEL
    assert details.caption == "New drop"
    assert details.heading is None


def test_caption_and_platform_are_required() -> None:
    with pytest.raises(ValidationError):
        validate_posting_details(platform=None, caption="x")
    with pytest.raises(ValidationError):
        validate_posting_details(platform="INSTAGRAM_POST", caption="")
    with pytest.raises(ValidationError):
        validate_posting_details(platform="MYSPACE", caption="x")


def test_hashtags_are_stripped_of_hash_and_blanks() -> None:
    assert normalize_hashtags(["#viral", " reels ", "", "#"]) == ["viral", "reels"]


def test_keep_in_queue_twice_then_final_post() -> None:
    history: list[dict] = []
    stage = ProductionStage.READY_TO_POST
    urls = ["https://instagram.com/p/1", "https://tiktok.com/@vca/video/2", "https://youtube.com/shorts/3"]

    for url, keep in zip(urls, [True, True, False]):
        plan = plan_mark_posted(stage=stage, posted_urls=history, posted_url=url, keep_in_queue=keep, now=NOW)
        history = plan.updates["posted_urls"]
        stage = plan.to_stage

    assert [entry["url"] for entry in history] == urls
    assert stage == ProductionStage.POSTED
    assert plan.updates["posted_url"] == urls[-1]
    assert plan.updates["posted_at"] == NOW
    # the URL history is written through updates alone
    assert plan.effects == []


def test_keep_in_queue_clears_posting_details() -> None:
    plan = plan_mark_posted(
        stage=ProductionStage.READY_TO_POST,
        posted_urls=None,
        posted_url="https://instagram.com/p/1",
        keep_in_queue=True,
        now=NOW,
    )
    assert plan.to_stage == ProductionStage.READY_TO_POST
    assert plan.updates["posting_platform"] is None
    assert plan.updates["scheduled_post_time"] is None
    assert "production_stage" not in plan.updates


def test_mark_posted_validates_url_and_stage() -> None:
    with pytest.raises(ValidationError):
        plan_mark_posted(
            stage=ProductionStage.READY_TO_POST, posted_urls=[], posted_url="not a url", keep_in_queue=False, now=NOW
        )
    with pytest.raises(StageMismatch):
        plan_mark_posted(
            stage=ProductionStage.EDITING,
            posted_urls=[],
            posted_url="https://instagram.com/p/1",
            keep_in_queue=False,
            now=NOW,
        )
