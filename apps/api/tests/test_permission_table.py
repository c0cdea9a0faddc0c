"""
Tests for the static role -> action permission table.
"""
import pytest

from apps.authz.models import RoleChoices
from apps.authz.permission_table import (
    PERMISSION_TABLE,
    Action,
    has_permission,
    permissions_for,
)


class TestPermissionTable:

    @pytest.mark.parametrize('role,action', [
        (RoleChoices.ADMIN, Action.MANAGE_USERS),
        (RoleChoices.ADMIN, Action.VIEW_ALL_APPOINTMENTS),
        (RoleChoices.ADMIN, Action.MANAGE_SCHEDULES),
        (RoleChoices.ADMIN, Action.CANCEL_APPOINTMENTS),
        (RoleChoices.STAFF, Action.VIEW_PATIENTS),
        (RoleChoices.STAFF, Action.CREATE_APPOINTMENTS),
        (RoleChoices.STAFF, Action.MANAGE_OWN_SCHEDULE),
        (RoleChoices.STAFF, Action.MARK_NO_SHOW),
        (RoleChoices.PATIENT, Action.VIEW_OWN_PROFILE),
        (RoleChoices.PATIENT, Action.REQUEST_APPOINTMENTS),
        (RoleChoices.PATIENT, Action.CANCEL_OWN_APPOINTMENTS),
    ])
    def test_granted(self, role, action):
        assert has_permission(role, action) is True

    @pytest.mark.parametrize('role,action', [
        (RoleChoices.STAFF, Action.MANAGE_USERS),
        (RoleChoices.STAFF, Action.MANAGE_SCHEDULES),
        (RoleChoices.PATIENT, Action.VIEW_PATIENTS),
        (RoleChoices.PATIENT, Action.CANCEL_APPOINTMENTS),
        (RoleChoices.PATIENT, Action.MARK_NO_SHOW),
        (RoleChoices.PATIENT, Action.CHECK_IN_APPOINTMENTS),
        (RoleChoices.ADMIN, Action.VIEW_OWN_PROFILE),
    ])
    def test_not_granted(self, role, action):
        assert has_permission(role, action) is False

    def test_plain_strings_are_accepted(self):
        assert has_permission('admin', 'manage_users') is True
        assert has_permission('patient', 'manage_users') is False

    def test_unknown_role_or_action_is_denied(self):
        assert has_permission('superuser', Action.MANAGE_USERS) is False
        assert has_permission(RoleChoices.ADMIN, 'delete_everything') is False
        assert has_permission(None, Action.MANAGE_USERS) is False
        assert has_permission(RoleChoices.ADMIN, None) is False
        assert permissions_for('superuser') == frozenset()

    def test_table_cannot_be_mutated(self):
        with pytest.raises(TypeError):
            PERMISSION_TABLE['patient'] = frozenset({Action.MANAGE_USERS})
        with pytest.raises(AttributeError):
            PERMISSION_TABLE['patient'].add(Action.MANAGE_USERS)
        assert has_permission(RoleChoices.PATIENT, Action.MANAGE_USERS) is False

    def test_every_granted_action_is_a_known_action(self):
        known = set(Action.values)
        for role, actions in PERMISSION_TABLE.items():
            assert {str(action) for action in actions} <= known, role
