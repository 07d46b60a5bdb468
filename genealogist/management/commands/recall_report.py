"""
Print a recall report as JSON.

Usage:
    python manage.py recall_report 42
    python manage.py recall_report 42 --tenant bakery --indent 2
"""

import json

from django.core.management.base import BaseCommand, CommandError
from django.core.serializers.json import DjangoJSONEncoder

from genealogist.conf import get_genealogy_store
from genealogist.exceptions import NotFound
from genealogist.services.reports import build_recall_report


class Command(BaseCommand):
    help = "Builds the traceability report of a recall and prints it as JSON"

    def add_arguments(self, parser):
        parser.add_argument("recall_id", type=int, help="Recall primary key")
        parser.add_argument(
            "--tenant",
            default=None,
            help="Restrict the trace to one tenant",
        )
        parser.add_argument(
            "--indent",
            type=int,
            default=None,
            help="Pretty-print with this indent",
        )

    def handle(self, *args, **options):
        store = get_genealogy_store(options["tenant"])

        try:
            report = build_recall_report(options["recall_id"], store=store)
        except NotFound as e:
            raise CommandError(f"Recall {options['recall_id']} not found") from e

        payload = json.dumps(report.as_dict(), cls=DjangoJSONEncoder, indent=options["indent"])
        self.stdout.write(payload)

        if report.skipped_edge_count:
            self.stderr.write(
                self.style.WARNING(
                    f"{report.skipped_edge_count} lineage edge(s) could not be resolved"
                )
            )
