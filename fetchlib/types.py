from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Protocol, Tuple


class Headers:
    """Ordered multi-map of response headers.

    Keys keep the casing they were added with; lookups are case-insensitive.
    """

    def __init__(self, items: Optional[List[Tuple[str, str]]] = None) -> None:
        self._items: List[Tuple[str, str]] = list(items or [])

    def add(self, name: str, value: str) -> None:
        self._items.append((name, value))

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        lowered = name.lower()
        for key, value in self._items:
            if key.lower() == lowered:
                return value
        return default

    def get_all(self, name: str) -> List[str]:
        lowered = name.lower()
        return [value for key, value in self._items if key.lower() == lowered]

    def items(self) -> List[Tuple[str, str]]:
        return list(self._items)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __iter__(self) -> Iterator[str]:
        return (key for key, _ in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Headers):
            return NotImplemented
        return self._items == other._items

    def __repr__(self) -> str:
        return f"Headers({self._items!r})"


@dataclass(frozen=True)
class ResponseEvent:
    url: str
    status: int
    status_text: str
    headers: Mapping[str, Any]


@dataclass(frozen=True)
class FetchedResult:
    requested_url: str
    final_url: str
    fetch_timestamp: int
    headers: Headers
    content: bytes
    content_type: str
    response_time_millis: int
    payload: Any = None
    redirect_target_url: Optional[str] = None
    redirect_count: int = 0
    remote_host: Optional[str] = None
    status_code: int = -1
    reason_phrase: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        """Flatten into a JSON-serialisable dict; payload is left out."""
        return {
            "url": self.requested_url,
            "final_url": self.final_url,
            "fetch_timestamp": self.fetch_timestamp,
            "status": self.status_code,
            "reason": self.reason_phrase,
            "content_type": self.content_type,
            "headers": [[k, v] for k, v in self.headers.items()],
            "size_bytes": len(self.content),
            "response_time_ms": self.response_time_millis,
            "redirect_count": self.redirect_count,
            "redirect_target_url": self.redirect_target_url,
            "remote_host": self.remote_host,
        }


ResponseListener = Callable[[ResponseEvent], None]


class InspectionChannelProtocol(Protocol):
    def enable(self, max_total_buffer_size: int, max_resource_buffer_size: int, max_post_data_size: int) -> None: ...

    def on_response_received(self, callback: ResponseListener) -> None: ...

    def remove_all_listeners(self) -> None: ...


class BrowserSessionProtocol(Protocol):
    inspection: InspectionChannelProtocol

    def navigate(self, url: str) -> None: ...

    def current_url(self) -> str: ...

    def page_source(self) -> bytes: ...

    def quit(self) -> None: ...


@dataclass
class ListenerRegistry:
    """Callback list shared by inspection channel implementations."""

    listeners: List[ResponseListener] = field(default_factory=list)

    def add(self, callback: ResponseListener) -> None:
        self.listeners.append(callback)

    def clear(self) -> None:
        self.listeners.clear()

    def dispatch(self, event: ResponseEvent) -> None:
        for callback in list(self.listeners):
            callback(event)
