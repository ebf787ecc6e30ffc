"""
Permission resolution tests — role table, overrides and ownership checks.
"""

from types import SimpleNamespace

import pytest

from marketplace.core.exceptions import AuthorizationError
from marketplace.models.enums import Role
from marketplace.services import permission_service as ps


def _user(role, permissions=None, uid="u1"):
    return SimpleNamespace(id=uid, role=Role(role).value, permissions=permissions)


class TestRoleTable:
    def test_every_role_has_an_entry(self):
        assert set(ps.ROLE_PERMISSIONS) == set(Role)

    def test_role_table_uses_known_codenames(self):
        for role, codenames in ps.ROLE_PERMISSIONS.items():
            assert codenames <= ps.ALL_PERMISSIONS, f"{role.value}: {sorted(codenames - ps.ALL_PERMISSIONS)}"

    def test_super_admin_passes_any_codename(self):
        admin = _user(Role.SUPER_ADMIN, permissions=["media.read"])
        assert ps.has_permission(admin, "platform_fee.manage")
        assert ps.get_effective_permissions(admin) == ps.ALL_PERMISSIONS

    def test_viewer_is_read_only(self):
        viewer = _user(Role.VIEWER)
        assert ps.has_permission(viewer, "specialist.read.any")
        assert not ps.has_permission(viewer, "specialist.create")

    def test_specialist_scope_is_own(self):
        spec = _user(Role.SPECIALIST)
        assert ps.has_permission(spec, "specialist.update.own")
        assert not ps.has_permission(spec, "specialist.update.any")

    def test_unknown_role_has_nothing(self):
        ghost = SimpleNamespace(id="x", role="ghost", permissions=None)
        assert ps.get_effective_permissions(ghost) == frozenset()
        assert not ps.has_permission(ghost, "media.read")

    def test_anonymous_has_nothing(self):
        assert not ps.has_permission(None, "media.read")


class TestOverrides:
    def test_non_empty_override_replaces_role_set(self):
        viewer = _user(Role.VIEWER, permissions=["company.create"])
        assert ps.has_permission(viewer, "company.create")
        assert not ps.has_permission(viewer, "specialist.read.any")

    def test_empty_override_falls_back_to_role(self):
        viewer = _user(Role.VIEWER, permissions=[])
        assert ps.has_permission(viewer, "specialist.read.any")


class TestChecks:
    def test_require_permission_raises_forbidden(self):
        with pytest.raises(AuthorizationError) as exc:
            ps.require_permission(_user(Role.CLIENT), "user.delete")
        assert exc.value.status_code == 403
        assert exc.value.details == {"required": "user.delete"}

    def test_require_any_permission(self):
        ps.require_any_permission(_user(Role.CLIENT), "user.delete", "media.read")
        with pytest.raises(AuthorizationError):
            ps.require_any_permission(_user(Role.CLIENT), "user.delete", "user.manage")

    def test_require_role(self):
        ps.require_role(_user(Role.ADMIN), {Role.ADMIN, Role.SUPER_ADMIN})
        with pytest.raises(AuthorizationError):
            ps.require_role(_user(Role.MANAGER), {Role.SUPER_ADMIN})


class TestOwnership:
    def test_owner_passes(self):
        resource = SimpleNamespace(id="r1", created_by_id="u1")
        ps.check_ownership(_user(Role.SPECIALIST, uid="u1"), resource)

    def test_stranger_is_rejected(self):
        resource = SimpleNamespace(id="r1", created_by_id="u2")
        with pytest.raises(AuthorizationError):
            ps.check_ownership(_user(Role.SPECIALIST, uid="u1"), resource)

    def test_manager_bypasses_reads_but_not_mutations(self):
        resource = SimpleNamespace(id="r1", created_by_id="someone")
        manager = _user(Role.MANAGER)
        ps.check_ownership(manager, resource, bypass_roles=ps.READ_BYPASS_ROLES)
        with pytest.raises(AuthorizationError):
            ps.check_ownership(manager, resource, bypass_roles=ps.MUTATION_BYPASS_ROLES)

    def test_custom_owner_attribute(self):
        company = SimpleNamespace(id="c1", owner_id="u1")
        assert ps.owns(_user(Role.CLIENT, uid="u1"), company, owner_attr="owner_id")

    def test_scoped_permission_any_or_owned(self):
        resource = SimpleNamespace(id="r1", created_by_id="u1")
        assert ps.can_act(_user(Role.ADMIN, uid="zz"), resource,
                          "specialist.update.any", "specialist.update.own")
        assert ps.can_act(_user(Role.SPECIALIST, uid="u1"), resource,
                          "specialist.update.any", "specialist.update.own")
        with pytest.raises(AuthorizationError):
            ps.require_scoped_permission(_user(Role.SPECIALIST, uid="u2"), resource,
                                         "specialist.update.any", "specialist.update.own")
