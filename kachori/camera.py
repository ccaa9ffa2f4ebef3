"""Still-image capture from a webcam using OpenCV."""

from __future__ import annotations

import base64
import mimetypes
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path


@dataclass(frozen=True)
class CapturedFrame:
    """An encoded still image."""

    data: bytes
    mime_type: str = "image/jpeg"
    captured_at: str = ""  # ISO8601

    def to_data_uri(self) -> str:
        encoded = base64.standard_b64encode(self.data).decode()
        return f"data:{self.mime_type};base64,{encoded}"

    @classmethod
    def from_file(cls, path: str | Path) -> CapturedFrame:
        p = Path(path)
        mime_type = mimetypes.guess_type(str(p))[0] or "image/jpeg"
        return cls(
            data=p.read_bytes(),
            mime_type=mime_type,
            captured_at=datetime.now(timezone.utc).isoformat(),
        )


class WebcamCapture:
    """Holds one webcam open between open() and close().

    ``busy`` is set by the owner while a captured frame is being analyzed so
    that the same source does not start a second capture.
    """

    def __init__(self, camera_index: int = 0, save_dir: str | None = None) -> None:
        self._camera_index = camera_index
        self._save_dir = Path(save_dir) if save_dir else None
        self._cap = None
        self.busy = False

    @property
    def is_open(self) -> bool:
        return self._cap is not None

    def open(self) -> None:
        if self._cap is not None:
            return
        cv2 = _import_cv2()
        cap = cv2.VideoCapture(self._camera_index)
        if not cap.isOpened():
            cap.release()
            raise RuntimeError(
                f"Could not open camera {self._camera_index}. "
                "Check that it is connected."
            )
        self._cap = cap

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def grab(self) -> CapturedFrame:
        """Read one frame and encode it as JPEG."""
        if self._cap is None:
            raise RuntimeError("Camera is not open")
        if self.busy:
            raise RuntimeError("Camera is busy")

        cv2 = _import_cv2()
        ret, frame = self._cap.read()
        if not ret or frame is None:
            raise RuntimeError(
                f"Could not read a frame from camera {self._camera_index}."
            )

        ok, buf = cv2.imencode(".jpg", frame)
        if not ok:
            raise RuntimeError("Failed to encode frame as JPEG")

        now = datetime.now(timezone.utc)
        data = buf.tobytes()
        if self._save_dir is not None:
            self._save_dir.mkdir(parents=True, exist_ok=True)
            filename = f"cam{self._camera_index}_{now.strftime('%Y%m%d_%H%M%S')}.jpg"
            (self._save_dir / filename).write_bytes(data)

        return CapturedFrame(data=data, captured_at=now.isoformat())

    @staticmethod
    def list_cameras(max_check: int = 10) -> list[int]:
        """List available camera indices by probing."""
        cv2 = _import_cv2()

        available: list[int] = []
        for i in range(max_check):
            cap = cv2.VideoCapture(i)
            if cap.isOpened():
                available.append(i)
                cap.release()
        return available


def _import_cv2():
    try:
        import cv2
    except ImportError:
        raise ImportError(
            "opencv-python is required: pip install opencv-python"
        ) from None
    return cv2
