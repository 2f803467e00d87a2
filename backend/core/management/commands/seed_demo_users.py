from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model

from backend.core.id_generator import generate_user_id, save_with_custom_id

User = get_user_model()

DEMO_USERS = [
    {'email': 'owner@workshop.com', 'name': 'Workshop Owner', 'role': 'owner'},
    {'email': 'admin@workshop.com', 'name': 'Workshop Admin', 'role': 'lv2'},
    {'email': 'worker@workshop.com', 'name': 'Workshop Worker', 'role': 'lv1'},
]


class Command(BaseCommand):
    help = 'Create one demo account per role (owner, lv2, lv1)'

    def add_arguments(self, parser):
        parser.add_argument('--password', default='password123', help='Password for the demo accounts')

    def handle(self, *args, **options):
        for demo in DEMO_USERS:
            if User.objects.filter(email__iexact=demo['email']).exists():
                self.stdout.write(f'  Already exists: {demo["email"]}')
                continue

            user = User(
                username=demo['email'],
                email=demo['email'],
                name=demo['name'],
                role=demo['role'],
                status='active',
                created_by='self',
                is_staff=demo['role'] == 'owner',
                is_superuser=demo['role'] == 'owner',
            )
            user.set_password(options['password'])
            save_with_custom_id(user, lambda: generate_user_id(user.role))
            self.stdout.write(self.style.SUCCESS(f'✓ Created {user.custom_id} {user.email} ({user.get_role_display()})'))
