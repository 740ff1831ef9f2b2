"""
Latest-frame slot for the live camera preview (capture thread -> GUI timer).

deque(maxlen=1) drops the previous frame on append, so the delivery thread never
waits for the GUI. The reader passes the current generation; a frame of a
superseded device is discarded instead of shown.
"""

from __future__ import annotations

import threading
from collections import deque

from maskwatch.application.ports.capture import Frame


class PreviewSlot:
    def __init__(self) -> None:
        self._deque: deque[Frame] = deque(maxlen=1)
        self._lock = threading.Lock()

    def put_nowait(self, frame: Frame) -> None:
        with self._lock:
            self._deque.append(frame)  # maxlen=1 drops previous frame

    def take_latest(self, current_generation: int) -> Frame | None:
        """Pop the newest frame, or None if empty or from an older generation."""
        with self._lock:
            if not self._deque:
                return None
            frame = self._deque.popleft()
        if frame.generation != current_generation or frame.is_empty:
            return None
        return frame

    def clear(self) -> None:
        with self._lock:
            self._deque.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._deque)
