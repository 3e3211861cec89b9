from .domain import RefundRequested
from .interfaces import INotificationSink


def on_refund_requested(event: RefundRequested, sink: "INotificationSink") -> None:
    """Обработчик запроса на возврат денег."""
    sink.request_refund(event.order_no, event.amount)
