"""
EMPIRE CORE — ERRORS
Wyjątki kernela. Żaden z nich nie wychodzi poza publiczne metody busa,
loadera i modułów; łapane są na granicach catch-log-continue.
"""


class KernelError(Exception):
    """Bazowy błąd kernela."""
    pass


class ModuleResolutionError(KernelError):
    """Moduł nie istnieje albo jego eksport nie jest konstruowalny."""
    pass


class StoreUnavailableError(KernelError):
    """Persistent settings store cannot be read or written."""
    pass


class MessagingError(KernelError):
    """Inter-context message could not be delivered."""
    pass


class NoReceiverError(MessagingError):
    """No other context is listening on the channel."""
    pass
