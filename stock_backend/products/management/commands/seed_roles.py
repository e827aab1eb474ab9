# products/management/commands/seed_roles.py

from __future__ import annotations

from django.contrib.auth.models import Group, Permission
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from permissions.roles import ROLE_CAPABILITIES


def _resolve_permission(capability: str) -> Permission:
    app_label, _, codename = capability.partition(".")
    try:
        return Permission.objects.get(
            content_type__app_label=app_label,
            codename=codename,
        )
    except Permission.DoesNotExist as exc:
        raise CommandError(
            f"Permission '{capability}' does not exist. Run migrate first."
        ) from exc


class Command(BaseCommand):
    help = "Create / sync the role groups (admin, operator, viewer) and their permissions."

    @transaction.atomic
    def handle(self, *args, **options):
        for role, capabilities in ROLE_CAPABILITIES.items():
            group, created = Group.objects.get_or_create(name=role)
            perms = [_resolve_permission(cap) for cap in sorted(capabilities)]
            group.permissions.set(perms)

            verb = "Created" if created else "Synced"
            self.stdout.write(
                self.style.SUCCESS(f"{verb} role '{role}' ({len(perms)} permissions)")
            )
