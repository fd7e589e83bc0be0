from __future__ import annotations

from typing import Any


class FollowUpError(Exception):
    """Base class for errors surfaced by the follow-up engine."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(FollowUpError):
    status_code = 404

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class UnauthorizedError(FollowUpError):
    status_code = 403


class AlreadyCompletedError(FollowUpError):
    status_code = 409

    def __init__(self, follow_up_id: str) -> None:
        super().__init__(f"follow-up already completed: {follow_up_id}")
        self.follow_up_id = follow_up_id


class DuplicateFollowUpError(FollowUpError):
    status_code = 409

    def __init__(self, adoption_id: str, follow_up_type: str) -> None:
        super().__init__(f"follow-up {follow_up_type} already exists for adoption {adoption_id}")
        self.adoption_id = adoption_id
        self.follow_up_type = follow_up_type


class ConcurrentUpdateError(FollowUpError):
    status_code = 409

    def __init__(self, follow_up_id: str) -> None:
        super().__init__(f"follow-up was modified concurrently: {follow_up_id}")
        self.follow_up_id = follow_up_id


class QuestionnaireValidationError(FollowUpError):
    status_code = 422

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []
