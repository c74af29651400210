"""
Side-effect worker: applies committed order events to catalog sales and carts.
"""
import time

from django.core.management.base import BaseCommand

from ledger.infra.dispatcher import SideEffectDispatcher


class Command(BaseCommand):
    help = 'Apply committed order events to catalog sales and carts'

    def add_arguments(self, parser):
        parser.add_argument('--limit', type=int, default=100, help='Maximum events per batch')
        parser.add_argument('--loop', action='store_true', help='Keep polling the outbox')
        parser.add_argument('--interval', type=int, default=3, help='Seconds between polls')
        parser.add_argument(
            '--max-retries',
            type=int,
            default=5,
            help='Leave events alone once they have failed this many times',
        )

    def handle(self, *args, **options):
        dispatcher = SideEffectDispatcher(max_retries=options['max_retries'])

        if not options['loop']:
            self._run_batch(dispatcher, options['limit'], verbose=True)
            return

        self.stdout.write(f"Polling outbox every {options['interval']}s")
        while True:
            try:
                self._run_batch(dispatcher, options['limit'])
                time.sleep(options['interval'])
            except KeyboardInterrupt:
                self.stdout.write(self.style.WARNING('Stopped by user'))
                break

    def _run_batch(self, dispatcher, limit, verbose=False):
        processed = dispatcher.process_outbox_events(limit=limit)
        if processed or verbose:
            pending = dispatcher.outbox_repo.pending_count(max_retries=dispatcher.max_retries)
            self.stdout.write(self.style.SUCCESS(f'Processed {processed} events ({pending} pending)'))
