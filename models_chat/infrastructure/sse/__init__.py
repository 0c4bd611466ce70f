from models_chat.infrastructure.sse.event_reader import (
    DONE_SENTINEL,
    EventStreamReader,
    StreamEvent,
    iter_events,
)

__all__ = ["DONE_SENTINEL", "EventStreamReader", "StreamEvent", "iter_events"]
