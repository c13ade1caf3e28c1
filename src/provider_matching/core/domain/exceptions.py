class SchedulingError(Exception):
    """Classe base para todos os erros do motor de agendamento."""
    pass


class SolicitationNotFoundError(SchedulingError):
    pass


class ProviderNotFoundError(SchedulingError):
    pass


class AppointmentNotFoundError(SchedulingError):
    pass


class SchedulingExceptionNotFoundError(SchedulingError):
    pass


class UserNotFoundError(SchedulingError):
    pass


class ExceptionAlreadyResolvedError(SchedulingError):
    """A exceção de agendamento já foi aprovada ou rejeitada (estado terminal)."""
    pass


class ManualOverrideDisabledError(SchedulingError):
    pass


class NotAuthorizedError(SchedulingError):
    """O ator não possui papel privilegiado para a operação."""
    pass


class InvalidTransitionError(SchedulingError):
    """Transição de estado não prevista no ciclo de vida."""
    pass


class InvalidSchedulingRequestError(SchedulingError):
    """Dados de entrada inválidos (ex.: motivo de rejeição vazio)."""
    pass


class ConcurrentSchedulingError(SchedulingError):
    """
    O commit encontrou um agendamento ativo para a solicitação:
    outra tentativa concorrente venceu a corrida.
    """
    pass


class SlotUnavailableError(SchedulingError):
    """O horário escolhido foi ocupado entre a busca e o commit."""
    pass


class TransientSchedulingError(SchedulingError):
    """
    Falha de infraestrutura recuperável (contenção de banco, timeout).
    A tentativa inteira pode ser repetida com segurança.
    """
    pass
