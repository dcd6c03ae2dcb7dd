"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Input / request validation
  2xxx: Pricing
  3xxx: Ledger submission + confirmation
  4xxx: Reconciliation
  9xxx: System / store
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Input ---

class InvalidInputError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1001, f"Invalid input: {detail}", 422)


class SwapInProgressError(InvalidInputError):
    def __init__(self, wallet_address: str) -> None:
        AppError.__init__(
            self, 1002, f"A swap is already in progress for {wallet_address}", 409
        )


# --- 2xxx: Pricing ---

class InsufficientLiquidityError(AppError):
    def __init__(self, available_tokens: int) -> None:
        super().__init__(
            2001,
            f"Insufficient liquidity: {available_tokens} tokens available in pool",
            422,
        )


# --- 3xxx: Ledger ---

class NetworkUnavailableError(AppError):
    def __init__(self, detail: str = "Ledger network unreachable") -> None:
        super().__init__(3001, detail, 503)


class SubmissionRejectedError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3002, f"Submission rejected: {detail}", 502)


class DuplicateSubmissionError(AppError):
    def __init__(self, transaction_id: str) -> None:
        super().__init__(
            3003,
            f"Transaction {transaction_id} matches the last submission; refresh before retrying",
            409,
        )


class ConfirmationTimeoutError(AppError):
    def __init__(self, transaction_id: str, waited_seconds: float) -> None:
        super().__init__(
            3004,
            f"No terminal status for {transaction_id} after {waited_seconds:.0f}s",
            504,
        )


class LedgerRequestError(AppError):
    def __init__(self, status_code: int, path: str) -> None:
        super().__init__(3005, f"Ledger API error {status_code} on {path}", 502)


class TransactionNotFoundError(AppError):
    def __init__(self, transaction_id: str) -> None:
        super().__init__(3006, f"Transaction not found: {transaction_id}", 404)


# --- 4xxx: Reconciliation ---

class ReconciliationPartial(AppError):
    """Non-fatal: attached to a reconcile outcome, never raised to API callers."""

    def __init__(self, transaction_id: str, fields: list[str]) -> None:
        self.transaction_id = transaction_id
        self.fields = fields
        super().__init__(
            4001,
            f"Partial reconciliation for {transaction_id}: missing {', '.join(fields)}",
            200,
        )


class TradeRecordNotFoundError(AppError):
    def __init__(self, transaction_id: str) -> None:
        super().__init__(4002, f"Trade record not found: {transaction_id}", 404)


# --- 9xxx: System ---

class StoreUnavailableError(AppError):
    def __init__(self, detail: str = "Trade store unavailable") -> None:
        super().__init__(9001, detail, 503)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class InvalidStateTransitionError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9003, f"Invalid state transition: {detail}", 500)
