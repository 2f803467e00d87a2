import time

from django.core.management.base import BaseCommand

from backend.notifications.services import check_low_stock


class Command(BaseCommand):
    help = 'Send low stock alerts once, or every --interval minutes until stopped'

    def add_arguments(self, parser):
        parser.add_argument('--interval', type=int, default=0, help='Minutes between checks; 0 runs once')

    def handle(self, *args, **options):
        interval = options['interval']
        self.run_check()
        if interval <= 0:
            return

        self.stdout.write(f'Checking stock every {interval} minute(s), Ctrl+C to stop')
        try:
            while True:
                time.sleep(interval * 60)
                self.run_check()
        except KeyboardInterrupt:
            self.stdout.write('Stopped low stock monitoring')

    def run_check(self):
        sent = check_low_stock()
        if sent:
            self.stdout.write(self.style.WARNING(f'⚠ {sent} product(s) low on stock, alerts sent'))
        else:
            self.stdout.write(self.style.SUCCESS('✓ Stock levels OK'))
