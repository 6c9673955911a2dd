# app/core/exceptions.py

class LedgerError(Exception):
    """
    Base class for domain errors raised by the ledger services.
    Routers translate it to an HTTP response with `status_code`.
    """
    status_code = 400
    detail = "Ledger operation rejected."

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class InvalidAmount(LedgerError):
    status_code = 400
    detail = "Amount must be a positive whole number of cents."


class InsufficientBalance(LedgerError):
    status_code = 409
    detail = "Insufficient balance for this operation."


class CardNotActive(LedgerError):
    status_code = 409
    detail = "Card is not active."


class CardAlreadyActivated(LedgerError):
    status_code = 409
    detail = "Card is already activated."


class CardNotLinked(LedgerError):
    status_code = 409
    detail = "Card is not linked to a customer."


class CardStoreMismatch(LedgerError):
    status_code = 403
    detail = "This card is bound to another store."


class CardNotFound(LedgerError):
    status_code = 404
    detail = "Card not found."


class CustomerNotFound(LedgerError):
    status_code = 404
    detail = "Customer not found."


class StoreNotFound(LedgerError):
    status_code = 404
    detail = "Store not found."


class PendingPaymentNotFound(LedgerError):
    status_code = 404
    detail = "Pending payment not found."


class PaymentNotPending(LedgerError):
    status_code = 409
    detail = "Payment is no longer pending."


class PaymentExpired(LedgerError):
    status_code = 410
    detail = "Payment link has expired."


class DuplicatePaymentEvent(LedgerError):
    """Outcome of a payment event that was already applied. Only logged, never raised to callers."""
    status_code = 200
    detail = "Payment event already processed."


class ConcurrentMutationConflict(LedgerError):
    status_code = 503
    detail = "The card was modified concurrently. Please retry."


class PaymentGatewayError(LedgerError):
    status_code = 502
    detail = "Payment provider request failed."


class InvalidRule(LedgerError):
    status_code = 400
    detail = "Invalid rule definition."


class InvalidPaymentRequest(LedgerError):
    status_code = 400
    detail = "Invalid payment request."


class OfferNotFound(LedgerError):
    status_code = 404
    detail = "Offer not found."
