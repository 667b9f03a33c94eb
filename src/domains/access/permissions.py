# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Permission matrix mapping actions to the minimum role allowed to perform them."""

from enum import Enum

from src.domains.auth.models import Role


class Action(str, Enum):
    """Actions subject to authorization."""

    # Platform administration
    CREATE_ORGANIZATION = "create_organization"
    DELETE_ORGANIZATION = "delete_organization"
    PURGE_AUDIT_LOG = "purge_audit_log"

    # Organization administration
    UPDATE_ORGANIZATION = "update_organization"
    INVITE_USER = "invite_user"
    MANAGE_USERS = "manage_users"
    VIEW_ANALYTICS = "view_analytics"
    QUERY_AUDIT_LOG = "query_audit_log"
    INVALIDATE_CACHE = "invalidate_cache"

    # Teaching
    CREATE_COURSE = "create_course"
    UPDATE_COURSE = "update_course"
    DELETE_COURSE = "delete_course"
    MANAGE_LESSONS = "manage_lessons"
    MANAGE_QUIZZES = "manage_quizzes"
    AWARD_BADGE = "award_badge"

    # Learning
    VIEW_COURSE = "view_course"
    ENROLL = "enroll"
    SUBMIT_QUIZ = "submit_quiz"


PERMISSION_MATRIX: dict[Action, Role] = {
    Action.CREATE_ORGANIZATION: Role.SUPER_ADMIN,
    Action.DELETE_ORGANIZATION: Role.SUPER_ADMIN,
    Action.PURGE_AUDIT_LOG: Role.SUPER_ADMIN,
    Action.UPDATE_ORGANIZATION: Role.ORG_ADMIN,
    Action.INVITE_USER: Role.ORG_ADMIN,
    Action.MANAGE_USERS: Role.ORG_ADMIN,
    Action.VIEW_ANALYTICS: Role.ORG_ADMIN,
    Action.QUERY_AUDIT_LOG: Role.ORG_ADMIN,
    Action.INVALIDATE_CACHE: Role.ORG_ADMIN,
    Action.CREATE_COURSE: Role.MENTOR,
    Action.UPDATE_COURSE: Role.MENTOR,
    Action.DELETE_COURSE: Role.MENTOR,
    Action.MANAGE_LESSONS: Role.MENTOR,
    Action.MANAGE_QUIZZES: Role.MENTOR,
    Action.AWARD_BADGE: Role.MENTOR,
    Action.VIEW_COURSE: Role.LEARNER,
    Action.ENROLL: Role.LEARNER,
    Action.SUBMIT_QUIZ: Role.LEARNER,
}


def required_role(action: Action | str) -> Role | None:
    """Look up the minimum role for an action.

    Args:
        action: Action enum member or its string value.

    Returns:
        The minimum role, or None if the action is unknown.
    """
    try:
        return PERMISSION_MATRIX.get(Action(action))
    except ValueError:
        return None


def role_can_perform(role: Role, action: Action | str) -> bool:
    """Check the role requirement of an action, ignoring tenancy.

    Args:
        role: Role of the caller.
        action: Requested action.

    Returns:
        True if the action is known and the role meets its minimum.
    """
    minimum = required_role(action)
    return minimum is not None and role.meets(minimum)
