# engine.py
"""OpenCV-DNN adapter around an ONNX detector. Loading failures are fatal."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class InferenceEngine:
    def __init__(
        self,
        model_path: str | Path,
        input_size: Tuple[int, int] = (640, 640),
        use_cuda: bool = False,
    ):
        self.model_path = Path(model_path)
        self.input_size = (int(input_size[0]), int(input_size[1]))
        if not self.model_path.is_file():
            raise FileNotFoundError(f"Model file not found: {self.model_path}")
        try:
            self.net = cv2.dnn.readNetFromONNX(str(self.model_path))
        except cv2.error as exc:
            raise RuntimeError(f"Could not load {self.model_path}: {exc}") from exc
        if use_cuda:
            self.net.setPreferableBackend(cv2.dnn.DNN_BACKEND_CUDA)
            self.net.setPreferableTarget(cv2.dnn.DNN_TARGET_CUDA)
        logger.info("[Engine] Loaded %s (input %dx%d)", self.model_path, *self.input_size)

    def infer(self, frame_bgr: np.ndarray) -> np.ndarray:
        """Blocking forward pass; returns the raw output tensor."""
        blob = cv2.dnn.blobFromImage(
            frame_bgr, 1.0 / 255.0, self.input_size, swapRB=True, crop=False
        )
        self.net.setInput(blob)
        return np.asarray(self.net.forward(), dtype=np.float32)
