"""Plain-dict views of ORM rows for the response envelope. Callers pass rows loaded with their relations."""

from __future__ import annotations

from typing import Any

from app.models import Profile, ProjectAssignment, ProjectSkip, ViralAnalysis


def _enum(value: Any) -> Any:
    return getattr(value, "value", value)


def _iso(value: Any) -> str | None:
    return value.isoformat() if value else None


def serialize_profile(profile: Profile | None) -> dict | None:
    if profile is None:
        return None
    return {
        "id": str(profile.id),
        "email": profile.email,
        "full_name": profile.full_name,
        "role": _enum(profile.role),
        "is_trusted_writer": bool(profile.is_trusted_writer),
        "has_pin": bool(profile.pin_hash),
        "avatar_url": profile.avatar_url,
        "created_at": _iso(profile.created_at),
    }


def serialize_assignment(assignment: ProjectAssignment) -> dict:
    return {
        "id": assignment.id,
        "role": _enum(assignment.role),
        "user_id": str(assignment.user_id),
        "user": serialize_profile(assignment.user),
        "assigned_by": str(assignment.assigned_by) if assignment.assigned_by else None,
        "created_at": _iso(assignment.created_at),
    }


def serialize_analysis(analysis: ViralAnalysis) -> dict:
    return {
        "id": str(analysis.id),
        "user_id": str(analysis.user_id) if analysis.user_id else None,
        "writer": serialize_profile(analysis.writer),
        "reference_url": analysis.reference_url,
        "title": analysis.title,
        "hook": analysis.hook,
        "why_viral": analysis.why_viral,
        "how_to_replicate": analysis.how_to_replicate,
        "target_emotion": analysis.target_emotion,
        "expected_outcome": analysis.expected_outcome,
        "form_data": analysis.form_data or {},
        "status": _enum(analysis.status),
        "hook_strength": analysis.hook_strength,
        "content_quality": analysis.content_quality,
        "viral_potential": analysis.viral_potential,
        "replication_clarity": analysis.replication_clarity,
        "overall_score": float(analysis.overall_score) if analysis.overall_score is not None else None,
        "feedback": analysis.feedback,
        "feedback_voice_note_url": analysis.feedback_voice_note_url,
        "reviewed_by": str(analysis.reviewed_by) if analysis.reviewed_by else None,
        "reviewed_at": _iso(analysis.reviewed_at),
        "rejection_count": analysis.rejection_count or 0,
        "is_dissolved": bool(analysis.is_dissolved),
        "dissolution_reason": analysis.dissolution_reason,
        "disapproval_count": analysis.disapproval_count or 0,
        "last_disapproved_at": _iso(analysis.last_disapproved_at),
        "disapproval_reason": analysis.disapproval_reason,
        "production_stage": _enum(analysis.production_stage),
        "priority": _enum(analysis.priority),
        "content_id": analysis.content_id,
        "deadline": _iso(analysis.deadline),
        "budget": float(analysis.budget) if analysis.budget is not None else None,
        "production_notes": analysis.production_notes,
        "admin_remarks": analysis.admin_remarks,
        "planned_date": _iso(analysis.planned_date),
        "production_started_at": _iso(analysis.production_started_at),
        "production_completed_at": _iso(analysis.production_completed_at),
        "industry_id": analysis.industry_id,
        "profile_id": analysis.profile_id,
        "total_people_involved": analysis.total_people_involved,
        "shoot_possibility": analysis.shoot_possibility,
        "hook_tags": [{"id": tag.id, "name": tag.name} for tag in analysis.hook_tags],
        "character_tags": [{"id": tag.id, "name": tag.name} for tag in analysis.character_tags],
        "assignments": [serialize_assignment(item) for item in analysis.assignments],
        "posting_platform": _enum(analysis.posting_platform),
        "posting_caption": analysis.posting_caption,
        "posting_heading": analysis.posting_heading,
        "posting_hashtags": list(analysis.posting_hashtags or []),
        "scheduled_post_time": _iso(analysis.scheduled_post_time),
        "posted_url": analysis.posted_url,
        "posted_at": _iso(analysis.posted_at),
        "posted_urls": list(analysis.posted_urls or []),
        "created_at": _iso(analysis.created_at),
        "updated_at": _iso(analysis.updated_at),
    }


def serialize_skip(skip: ProjectSkip) -> dict:
    return {
        "id": skip.id,
        "analysis_id": str(skip.analysis_id),
        "user_id": str(skip.user_id),
        "role": _enum(skip.role),
        "skipped_at": _iso(skip.skipped_at),
    }
