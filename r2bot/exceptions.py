from typing import Optional


class R2BotError(Exception):
    pass


class SettingsError(R2BotError):
    pass


class TransactionReverted(R2BotError):
    def __init__(self, tx_hash: str, message: str = "Transaction reverted"):
        super().__init__(f"{message}: {tx_hash}")
        self.tx_hash = tx_hash


class InsufficientBalanceError(R2BotError):
    pass


class RetryExhaustedError(R2BotError):
    """Raised once every attempt of an operation has faulted."""

    def __init__(self, name: str, attempts: int, last_error: Optional[str] = None):
        message = f"All {attempts} attempts failed for {name}"
        if last_error:
            message = f"{message}: {last_error}"
        super().__init__(message)
        self.name = name
        self.attempts = attempts
        self.last_error = last_error
