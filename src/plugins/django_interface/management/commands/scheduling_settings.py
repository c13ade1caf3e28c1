from django.core.management.base import BaseCommand, CommandError

from provider_matching.adapters.config import composition_root
from provider_matching.core.domain.entities.scheduling_config import BalancedWeights
from provider_matching.core.domain.exceptions import InvalidSchedulingRequestError


def _on_off(value: str) -> bool:
    return value.lower() in {"on", "true", "1", "sim"}


class Command(BaseCommand):
    help = "Exibe ou altera a configuração do agendamento automático (SystemSetting)."

    def add_arguments(self, parser):
        parser.add_argument("--enabled", choices=["on", "off"], help="Liga/desliga o agendamento automático")
        parser.add_argument("--priority", help="cost | distance | availability | balanced")
        parser.add_argument("--min-days", type=int, help="Dias mínimos de antecedência")
        parser.add_argument("--manual-override", choices=["on", "off"], help="Permite exceções manuais")
        parser.add_argument(
            "--weights",
            nargs=3,
            type=float,
            metavar=("PRICE", "DISTANCE", "LOAD"),
            help="Pesos da política balanced",
        )

    def handle(self, *args, **opts):
        service = composition_root.container.scheduling_config_service()
        try:
            if opts.get("enabled"):
                service.set_automatic_scheduling(_on_off(opts["enabled"]))
            if opts.get("priority"):
                service.set_scheduling_priority(opts["priority"])
            if opts.get("min_days") is not None:
                service.set_min_days_ahead(opts["min_days"])
            if opts.get("manual_override"):
                service.set_manual_override(_on_off(opts["manual_override"]))
            if opts.get("weights"):
                current = service.balanced_weights()
                price, distance, load = opts["weights"]
                service.set_balanced_weights(BalancedWeights(
                    price=price,
                    distance=distance,
                    load=load,
                    price_ceiling=current.price_ceiling,
                    load_ceiling=current.load_ceiling,
                ))
        except InvalidSchedulingRequestError as exc:
            raise CommandError(str(exc)) from exc

        cfg = service.load()
        self.stdout.write(f"enabled={cfg.automatic_scheduling_enabled}")
        self.stdout.write(f"priority={cfg.priority.value}")
        self.stdout.write(f"min_days_ahead={cfg.min_days_ahead}")
        self.stdout.write(f"allow_manual_override={cfg.allow_manual_override}")
        w = cfg.weights
        self.stdout.write(f"weights=price:{w.price} distance:{w.distance} load:{w.load}")
