"""
Account roles and permissions
Roles form a total order (guest < default < manager < admin). Each role holds
its own permissions plus every permission of the roles below it.
"""

from typing import Dict, List, Optional

ROLE_ORDER = ["guest", "default", "manager", "admin"]
DEFAULT_ROLE = "default"

# Resources and the actions that can be taken on them
MODULES = {
    "tasks": {
        "resource": "tasks",
        "actions": ["read", "create", "update", "delete"],
        "description": "Account task list"
    },
    "invites": {
        "resource": "invites",
        "actions": ["read", "create", "revoke"],
        "description": "Account invite links"
    },
    "accounts": {
        "resource": "accounts",
        "actions": ["read", "update"],
        "description": "Account profile"
    },
    "members": {
        "resource": "members",
        "actions": ["read", "update_role"],
        "description": "Account membership"
    },
}

# Permissions granted at each role, in addition to everything below it
ROLE_GRANTS = {
    "guest": {
        "permissions": ["tasks:read", "accounts:read", "members:read"],
        "description": "Read-only access to the account"
    },
    "default": {
        "permissions": ["tasks:create", "tasks:update"],
        "description": "Create and edit tasks"
    },
    "manager": {
        "permissions": ["tasks:delete", "invites:read", "invites:create", "invites:revoke"],
        "description": "Delete tasks and manage invites"
    },
    "admin": {
        "permissions": ["accounts:update", "members:update_role"],
        "description": "Full administrative access to the account"
    },
}


def sanitize_role(role: Optional[str]) -> str:
    """Normalize a stored role string; unknown values read as the default role"""
    r = (role or "").strip().lower()
    if r in ROLE_ORDER:
        return r
    return DEFAULT_ROLE


def role_rank(role: Optional[str]) -> int:
    return ROLE_ORDER.index(sanitize_role(role))


def max_role(a: Optional[str], b: Optional[str]) -> str:
    """Return the higher of two roles; ties keep the first"""
    a, b = sanitize_role(a), sanitize_role(b)
    return a if role_rank(a) >= role_rank(b) else b


def role_at_least(role: Optional[str], minimum: str) -> bool:
    return role_rank(role) >= role_rank(minimum)


def get_role_permissions(role: Optional[str]) -> List[str]:
    """All permissions held by a role, including inherited ones"""
    rank = role_rank(role)
    permissions = []
    for name in ROLE_ORDER[:rank + 1]:
        permissions.extend(ROLE_GRANTS[name]["permissions"])
    return sorted(set(permissions))


def get_permission_matrix() -> Dict[str, list]:
    """
    Returns all permissions and the roles that hold them
    Format: {
        "permissions": [{"name": "tasks:create", "resource": "tasks", "action": "create", "description": "..."}, ...],
        "roles": [{"name": "manager", "description": "...", "permissions": ["tasks:read", ...]}, ...]
    }
    """
    permissions = []
    for module_config in MODULES.values():
        resource = module_config["resource"]
        for action in module_config["actions"]:
            permissions.append({
                "name": f"{resource}:{action}",
                "resource": resource,
                "action": action,
                "description": f"{action.replace('_', ' ').capitalize()} {module_config['description'].lower()}"
            })

    roles = [
        {
            "name": name,
            "description": ROLE_GRANTS[name]["description"],
            "permissions": get_role_permissions(name),
        }
        for name in ROLE_ORDER
    ]
    return {
        "permissions": permissions,
        "roles": roles
    }


PERMISSION_MATRIX = get_permission_matrix()
