from .records import Channel, OptionalInstant, SendRecord, Subscriber

__all__ = ["Channel", "OptionalInstant", "SendRecord", "Subscriber"]
