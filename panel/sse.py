"""
Server-Sent Events for visningstilstanden.
- Motoren skyver hver DisplaySnapshot inn i en StateChannel (én per app).
- Hver klient har sin egen bounded kø; en treg klient mister bare sin egen strøm.
- Ny klient får siste tilstand først, så visningen aldri starter blank.
"""
from __future__ import annotations
import json
import queue
import threading
import time
from typing import Any, Dict, Iterator, List, Optional
from flask import Response, stream_with_context
from .models import DisplaySnapshot

__all__ = ["StateChannel", "sse_stream"]

Frame = str


def _frame(seq: int, event: str, payload: Dict[str, Any]) -> Frame:
    body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return f"id: {seq}\nevent: {event}\ndata: {body}\n\n"


class StateChannel:
    def __init__(self, maxsize: int = 50) -> None:
        self.maxsize = maxsize
        self._lock = threading.Lock()
        self._clients: List["queue.Queue[Frame]"] = []
        self._seq = 0
        self._last_frame: Optional[Frame] = None
        self._last_state: Optional[Dict[str, Any]] = None

    def publish(self, snap: DisplaySnapshot) -> None:
        """Kalles fra motor-tråden ved hver tilstandsendring."""
        payload = snap.to_dict()
        with self._lock:
            self._seq += 1
            frame = _frame(self._seq, "state", payload)
            self._last_frame = frame
            self._last_state = payload
            clients = list(self._clients)
        for q in clients:
            try:
                q.put_nowait(frame)
            except queue.Full:
                # klienten kobler til på nytt og får siste tilstand
                self.close(q)

    def last_state(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._last_state

    def open(self) -> "queue.Queue[Frame]":
        q: "queue.Queue[Frame]" = queue.Queue(maxsize=self.maxsize)
        with self._lock:
            if self._last_frame is not None:
                q.put_nowait(self._last_frame)
            self._clients.append(q)
        return q

    def close(self, q: "queue.Queue[Frame]") -> None:
        with self._lock:
            if q in self._clients:
                self._clients.remove(q)

    def is_open(self, q: "queue.Queue[Frame]") -> bool:
        with self._lock:
            return q in self._clients


def sse_stream(channel: StateChannel, ping_interval: float = 15.0) -> Response:
    def generate() -> Iterator[str]:
        q = channel.open()
        try:
            yield "retry: 5000\n\n"
            while channel.is_open(q) or not q.empty():
                try:
                    yield q.get(timeout=ping_interval)
                except queue.Empty:
                    yield _frame(0, "ping", {"ts": time.time()})
        except (GeneratorExit, BrokenPipeError, ConnectionError):
            pass
        finally:
            channel.close(q)

    return Response(
        stream_with_context(generate()),
        mimetype="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
            "Connection": "keep-alive",
        },
    )
