from __future__ import annotations

from django.core.management.base import BaseCommand

from contributions.services import refresh_all_contribution_flags


class Command(BaseCommand):
    help = "Recalcule l'indicateur « cotisation à jour » de tous les adhérents."

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Affiche seulement le nombre d'adhérents dont l'indicateur changerait.",
        )

    def handle(self, *args, **options):
        dry_run: bool = bool(options["dry_run"])
        summary = refresh_all_contribution_flags(dry_run=dry_run)

        if dry_run:
            self.stdout.write(f"[dry-run] {summary.changed} indicateur(s) changerai(en)t sur {summary.checked} adhérent(s).")
            return

        self.stdout.write(self.style.SUCCESS(f"Indicateurs mis à jour : {summary.changed}/{summary.checked}"))
