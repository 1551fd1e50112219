"""Lazy service exports so importing the package does not pull in every service module."""

__all__ = [
    "analytics_service",
    "assignment_service",
    "auth_bridge_service",
    "editor_service",
    "posting_service",
    "production_service",
    "review_service",
    "videographer_service",
]


def __getattr__(name: str):
    if name == "analytics_service":
        from app.services.analytics_service import analytics_service

        return analytics_service
    if name == "assignment_service":
        from app.services.assignment_service import assignment_service

        return assignment_service
    if name == "auth_bridge_service":
        from app.services.auth_bridge_service import auth_bridge_service

        return auth_bridge_service
    if name == "editor_service":
        from app.services.editor_service import editor_service

        return editor_service
    if name == "posting_service":
        from app.services.posting_service import posting_service

        return posting_service
    if name == "production_service":
        from app.services.production_service import production_service

        return production_service
    if name == "review_service":
        from app.services.review_service import review_service

        return review_service
    if name == "videographer_service":
        from app.services.videographer_service import videographer_service

        return videographer_service
    raise AttributeError(name)
