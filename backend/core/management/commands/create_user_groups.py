from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group, Permission

User = get_user_model()


class Command(BaseCommand):
    help = 'Create Django user groups mirroring the workshop roles (Owner, Admin, Worker) and sync membership'

    def handle(self, *args, **options):
        groups_config = [
            {
                'name': 'Owner',
                'role': 'owner',
                'description': 'Workshop owner - full system access including users and backend',
            },
            {
                'name': 'Admin',
                'role': 'lv2',
                'description': 'Workshop admin - verifies job cards, creates invoices, reads recent logs',
            },
            {
                'name': 'Worker',
                'role': 'lv1',
                'description': 'Mechanic - creates job cards and requests invoices',
            },
        ]

        created_count = 0
        updated_count = 0

        for group_config in groups_config:
            group, created = Group.objects.get_or_create(name=group_config['name'])

            if created:
                self.stdout.write(self.style.SUCCESS(f'✓ Created group: {group_config["name"]}'))
                created_count += 1
            else:
                self.stdout.write(f'  Group already exists: {group_config["name"]}')
                updated_count += 1

            if group_config['role'] == 'owner':
                group.permissions.set(Permission.objects.all())
                self.stdout.write('  Added all permissions to Owner group')
            elif group_config['role'] == 'lv2':
                permissions = Permission.objects.filter(
                    content_type__app_label__in=['job_cards', 'invoices']
                ) | Permission.objects.filter(
                    content_type__app_label__in=['inventory', 'core'], codename__startswith='view_'
                )
                group.permissions.set(permissions)
                self.stdout.write('  Added job card, invoice and read permissions to Admin group')
            else:
                permissions = Permission.objects.filter(
                    content_type__app_label='job_cards'
                ).exclude(codename__startswith='delete_') | Permission.objects.filter(
                    content_type__app_label='inventory', codename__startswith='view_'
                )
                group.permissions.set(permissions)
                self.stdout.write('  Added job card permissions to Worker group')

            # Keep membership in sync with User.role
            members = User.objects.filter(role=group_config['role'])
            group.user_set.set(members)
            self.stdout.write(f'  {members.count()} member(s) in {group_config["name"]}')

        self.stdout.write(self.style.SUCCESS(
            f'\nCompleted: {created_count} groups created, {updated_count} groups already existed'
        ))
