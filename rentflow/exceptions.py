class RentflowError(Exception):
    """Base class for errors raised by rentflow."""


class BillError(RentflowError):
    """Raised by the bill lifecycle before any notification is attempted."""


class BillNotFoundError(BillError):
    pass


class TenantNotFoundError(BillNotFoundError):
    pass


class RoomNotFoundError(BillNotFoundError):
    pass


class DuplicateBillError(BillError):
    pass


class BillAlreadyPaidError(BillError):
    pass


class PdfStorageError(RentflowError):
    """Neither durable storage nor the local fallback accepted the document."""


class NotificationError(RentflowError):
    pass


class EmailDeliveryError(NotificationError):
    pass


class WhatsAppDeliveryError(NotificationError):
    pass


class PaymentError(RentflowError):
    """The payment request cannot be accepted as sent."""


class PaymentVerificationError(PaymentError):
    pass


class PaymentGatewayUnavailableError(PaymentError):
    pass


class PaymentGatewayError(PaymentError):
    """The gateway rejected the request or answered with something unusable."""
