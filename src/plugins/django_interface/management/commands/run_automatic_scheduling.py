from django.core.management.base import BaseCommand, CommandError

from provider_matching.adapters.config import composition_root


class Command(BaseCommand):
    help = "Executa o agendamento automático em processo (uma solicitação, pendentes ou presas em processing)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--solicitation-id",
            type=int,
            help="Agenda apenas a solicitação informada",
        )
        parser.add_argument(
            "--stale",
            action="store_true",
            default=False,
            help="Reprocessa solicitações presas em `processing` além do watchdog",
        )
        parser.add_argument(
            "--limit",
            type=int,
            default=500,
            help="Máximo de solicitações por execução (default: 500)",
        )

    def handle(self, *args, **opts):
        container = composition_root.container
        if container is None:
            raise CommandError("Container de DI não inicializado.")

        if opts.get("solicitation_id"):
            outcome = container.scheduling_facade_service().schedule(opts["solicitation_id"])
            style = self.style.SUCCESS if outcome.succeeded else self.style.WARNING
            self.stdout.write(style(
                f"Solicitação {outcome.solicitation_id}: {outcome.status} "
                f"({outcome.reason.value}) appointment={outcome.appointment_id}"
            ))
            return

        batch = container.batch_scheduling_service()
        ids = batch.stale_ids(opts["limit"]) if opts["stale"] else batch.pending_ids(opts["limit"])
        if not ids:
            self.stdout.write("Nenhuma solicitação para processar.")
            return

        totals = batch.run_many(ids)
        summary = ", ".join(f"{k}={v}" for k, v in sorted(totals.items()))
        self.stdout.write(self.style.SUCCESS(f"Processadas {len(ids)} solicitações: {summary}"))
