"""Seed modules, permissions, roles, grants, and optionally a super admin."""

import uuid

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from access_control.models import Module, Permission, Role, RolePermission, UserRole

SEED_MODULES = [
    # name, display_name, icon, color
    ("admin", "Administration", "LayoutDashboard", "#1F2937"),
    ("cases", "Cases", "FolderHeart", "#2563EB"),
    ("contributions", "Contributions", "HandCoins", "#16A34A"),
    ("users", "Users", "Users", "#9333EA"),
    ("access-control", "Access Control", "ShieldCheck", "#DC2626"),
    ("profile", "Profile", "UserCircle", "#6B7280"),
    ("notifications", "Notifications", "Bell", "#F59E0B"),
]

SEED_PERMISSIONS = [
    # name, display_name, module
    ("view:dashboard", "Access Admin Dashboard", "admin"),
    ("view:analytics", "View Analytics", "admin"),
    ("manage:rbac", "Manage Roles and Permissions", "access-control"),
    ("manage:users", "Manage Users", "users"),
    ("view:users", "View Users", "users"),
    ("update:users", "Edit Users", "users"),
    ("delete:users", "Delete Users", "users"),
    ("view:cases", "View Cases", "cases"),
    ("create:cases", "Create Cases", "cases"),
    ("update:cases", "Edit Cases", "cases"),
    ("delete:cases", "Delete Cases", "cases"),
    ("publish:cases", "Publish Cases", "cases"),
    ("view:contributions", "View Contributions", "contributions"),
    ("create:contributions", "Make Contributions", "contributions"),
    ("approve:contributions", "Approve Contributions", "contributions"),
    ("refund:contributions", "Process Refunds", "contributions"),
    ("view:profile", "View Own Profile", "profile"),
    ("update:profile", "Edit Own Profile", "profile"),
    ("view:notifications", "View Notifications", "notifications"),
    ("manage:notifications", "Manage Notifications", "notifications"),
]

SEED_ROLES = [
    # name, display_name, description, is_system
    ("admin", "Administrator", "Full system access with all permissions", True),
    ("moderator", "Moderator", "Can manage cases and contributions but not system settings", True),
    ("donor", "Donor", "Regular user who can donate and view cases", True),
    ("beneficiary", "Beneficiary", "Can create and manage their own cases", False),
]

ALL_PERMISSIONS = "*"

SEED_GRANTS = {
    "admin": ALL_PERMISSIONS,
    "moderator": [
        "view:dashboard",
        "view:analytics",
        "create:cases",
        "view:cases",
        "update:cases",
        "publish:cases",
        "view:contributions",
        "approve:contributions",
        "view:users",
        "view:profile",
        "update:profile",
        "view:notifications",
    ],
    "donor": [
        "view:cases",
        "create:contributions",
        "view:contributions",
        "view:profile",
        "update:profile",
        "view:notifications",
    ],
    "beneficiary": [
        "create:cases",
        "view:cases",
        "update:cases",
        "view:contributions",
        "view:profile",
        "update:profile",
        "view:notifications",
    ],
}


def create_seed_modules() -> dict[str, Module]:
    modules = {}
    for sort_order, (name, display_name, icon, color) in enumerate(SEED_MODULES):
        module, _ = Module.objects.update_or_create(
            name=name,
            defaults={
                "display_name": display_name,
                "icon": icon,
                "color": color,
                "sort_order": sort_order,
                "is_system": True,
            },
        )
        modules[name] = module
    return modules


def create_seed_permissions(modules: dict[str, Module]) -> dict[str, Permission]:
    permissions = {}
    for name, display_name, module_name in SEED_PERMISSIONS:
        permission, _ = Permission.objects.update_or_create(
            name=name,
            defaults={"display_name": display_name, "module": modules[module_name], "is_system": True},
        )
        permissions[name] = permission
    return permissions


def create_seed_roles() -> dict[str, Role]:
    roles = {}
    for sort_order, (name, display_name, description, is_system) in enumerate(SEED_ROLES):
        role, _ = Role.objects.update_or_create(
            name=name,
            defaults={
                "display_name": display_name,
                "description": description,
                "is_system": is_system,
                "sort_order": sort_order,
            },
        )
        roles[name] = role
    return roles


def create_seed_grants(roles: dict[str, Role], permissions: dict[str, Permission]) -> None:
    """Grant each seeded role its permission set (additive, idempotent)."""
    for role_name, granted in SEED_GRANTS.items():
        names = permissions.keys() if granted == ALL_PERMISSIONS else granted
        for name in names:
            RolePermission.objects.get_or_create(role=roles[role_name], permission=permissions[name])


def seed_rbac() -> tuple[dict[str, Role], dict[str, Permission]]:
    """Create every seeded row; safe to run repeatedly."""
    with transaction.atomic():
        modules = create_seed_modules()
        permissions = create_seed_permissions(modules)
        roles = create_seed_roles()
        create_seed_grants(roles, permissions)
    return roles, permissions


def assign_super_admin(user_id: uuid.UUID, roles: dict[str, Role]) -> UserRole:
    assignment, _ = UserRole.objects.update_or_create(
        user_id=user_id, role=roles["admin"], defaults={"is_active": True, "expires_at": None}
    )
    return assignment


def reset_seed_data() -> None:
    """Remove seeded roles, permissions and modules along with rows referencing them.

    Modules that still hold non-seeded permissions are kept.
    """
    role_names = [role[0] for role in SEED_ROLES]
    permission_names = [permission[0] for permission in SEED_PERMISSIONS]
    module_names = [module[0] for module in SEED_MODULES]

    with transaction.atomic():
        UserRole.objects.filter(role__name__in=role_names).delete()
        RolePermission.objects.filter(permission__name__in=permission_names).delete()
        Role.objects.filter(name__in=role_names).delete()
        Permission.objects.filter(name__in=permission_names).delete()
        Module.objects.filter(name__in=module_names, permissions__isnull=True).delete()


class Command(BaseCommand):
    """Management command to seed the RBAC tables."""

    help = (
        "Seed RBAC modules, permissions, roles and grants. Use --reset to clear "
        "previously seeded rows (and their assignments) first, and "
        "--super-admin <uuid> to grant the admin role to a user."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--reset",
            action="store_true",
            help="Remove seeded roles/permissions/modules and their assignments before seeding.",
        )
        parser.add_argument(
            "--super-admin",
            dest="super_admin",
            metavar="USER_ID",
            help="Hosted-auth user id (UUID) to assign the admin role to.",
        )

    def handle(self, *args, **options):
        """Entrypoint for the management command."""
        super_admin = options.get("super_admin")
        user_id = None
        if super_admin:
            try:
                user_id = uuid.UUID(super_admin)
            except ValueError:
                raise CommandError(f"--super-admin must be a UUID, got '{super_admin}'.")

        if options.get("reset"):
            self.stdout.write("Resetting previously seeded RBAC data...")
            reset_seed_data()
            self.stdout.write(self.style.WARNING("Seeded RBAC data cleared."))

        self.stdout.write("Seeding RBAC data...")
        roles, permissions = seed_rbac()
        self.stdout.write(f"{len(roles)} roles, {len(permissions)} permissions.")

        if user_id is not None:
            assign_super_admin(user_id, roles)
            self.stdout.write(f"Assigned admin role to {user_id}.")

        self.stdout.write(self.style.SUCCESS("RBAC seed completed."))
