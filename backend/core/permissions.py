"""
Role hierarchy and role-gated access.

owner > lv2 (Admin) > lv1 (Worker). A requirement for a role is met by that
role and every role above it.
"""
from rest_framework.permissions import BasePermission

ROLE_HIERARCHY = {
    'owner': ['owner'],
    'lv2': ['owner', 'lv2'],
    'lv1': ['owner', 'lv2', 'lv1'],
}

NAVIGATION = [
    {'name': 'Dashboard', 'href': '/dashboard', 'roles': ['owner', 'lv2', 'lv1']},
    {'name': 'Inventory', 'href': '/inventory', 'roles': ['owner', 'lv2', 'lv1']},
    {'name': 'Job Cards', 'href': '/job-cards', 'roles': ['owner', 'lv2', 'lv1']},
    {'name': 'Invoices', 'href': '/invoices', 'roles': ['owner', 'lv2', 'lv1']},
    {'name': 'Users', 'href': '/users', 'roles': ['owner']},
    {'name': 'Logs', 'href': '/logs', 'roles': ['owner', 'lv2']},
]


def has_role(user, role):
    """True when the user's role meets the required role"""
    if not user or not getattr(user, 'is_authenticated', False):
        return False
    return user.role in ROLE_HIERARCHY.get(role, [])


def get_navigation(user):
    """Navigation entries visible to the user, gated on each entry's least privileged role"""
    return [
        {'name': item['name'], 'href': item['href']}
        for item in NAVIGATION
        if has_role(user, item['roles'][-1])
    ]


def get_role_permissions(user):
    return {
        'is_owner': has_role(user, 'owner'),
        'can_manage_users': has_role(user, 'owner'),
        'can_manage_inventory': has_role(user, 'owner'),
        'can_view_logs': has_role(user, 'lv2'),
        'can_verify_jobs': has_role(user, 'lv2'),
        'can_approve_jobs': has_role(user, 'owner'),
        'can_create_invoices': has_role(user, 'lv2'),
    }


class HasOwnerRole(BasePermission):
    message = 'Only the workshop owner can perform this action.'

    def has_permission(self, request, view):
        return has_role(request.user, 'owner')


class HasAdminRole(BasePermission):
    message = 'Admin or owner access required.'

    def has_permission(self, request, view):
        return has_role(request.user, 'lv2')
