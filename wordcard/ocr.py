from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, Sequence

import cv2
import numpy as np
from PIL import Image, ImageEnhance

from .errors import (
    OCREmptyResponseError,
    OCREngineError,
    OCRError,
    OCRMalformedResponseError,
    OCRResponseTooLargeError,
)
from .sanitize import MAX_TEXT_LENGTH
from .utils import record_error

DEFAULT_MAX_IMAGE_SIZE = 1024

_SHARPEN = np.array([[-1, -1, -1], [-1, 9, -1], [-1, -1, -1]])


class TextRecognizer(Protocol):
    """Anything that turns an image into text, or raises an OCRError kind."""

    def recognize(self, image: Image.Image) -> str: ...


def prepare_image(image: Image.Image, max_size: int = DEFAULT_MAX_IMAGE_SIZE) -> Image.Image:
    """Downscale so neither side exceeds max_size, keeping the aspect ratio."""
    w, h = image.size
    if w <= max_size and h <= max_size:
        return image
    longest = max(w, h)
    new_size = (max(1, w * max_size // longest), max(1, h * max_size // longest))
    return image.resize(new_size, Image.Resampling.LANCZOS)


def check_recognized_text(text: Any, max_length: int = MAX_TEXT_LENGTH) -> str:
    if text is None:
        raise OCREmptyResponseError("no_text_result")
    if not isinstance(text, str):
        raise OCRMalformedResponseError(f"non_text_result: {type(text).__name__}")
    if not text.strip():
        raise OCREmptyResponseError("empty_text")
    if len(text) > max_length:
        raise OCRResponseTooLargeError(f"text_too_large: {len(text)} > {max_length}")
    return text


def _bounds(quad: Sequence[Sequence[float]]) -> list[int]:
    """Axis-aligned [x0, y0, x1, y1] around an easyocr corner quad."""
    xs, ys = zip(*((pt[0], pt[1]) for pt in quad))
    return [int(min(xs)), int(min(ys)), int(max(xs)), int(max(ys))]


def binarize_for_ocr(image: Image.Image, *, block_size: int = 11, contrast: float = 1.5) -> Image.Image:
    """Grayscale page -> adaptive threshold -> denoise -> sharpen -> contrast boost."""
    gray = cv2.cvtColor(np.array(image.convert("RGB")), cv2.COLOR_RGB2GRAY)
    mask = cv2.adaptiveThreshold(gray, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C, cv2.THRESH_BINARY, block_size, 2)
    mask = cv2.fastNlMeansDenoising(mask, None, 10, 7, 21)
    mask = cv2.filter2D(mask, -1, _SHARPEN)
    return ImageEnhance.Contrast(Image.fromarray(mask)).enhance(contrast).convert("RGB")


def tokens_to_lines(tokens: list[dict[str, Any]]) -> list[str]:
    """Group OCR tokens into reading-order lines.

    A token joins the current line when its vertical center falls inside the
    line's first token span; lines are then read left to right.
    """
    placed = sorted(tokens, key=lambda t: (t["bbox_xyxy"][1], t["bbox_xyxy"][0]))
    rows: list[list[dict[str, Any]]] = []
    for t in placed:
        x0, y0, x1, y1 = t["bbox_xyxy"]
        cy = (y0 + y1) / 2.0
        if rows:
            ref = rows[-1][0]["bbox_xyxy"]
            if ref[1] <= cy <= ref[3]:
                rows[-1].append(t)
                continue
        rows.append([t])

    lines: list[str] = []
    for row in rows:
        row.sort(key=lambda t: t["bbox_xyxy"][0])
        text = " ".join(str(t["text"]).strip() for t in row if str(t["text"]).strip())
        if text:
            lines.append(text)
    return lines


@dataclass
class EasyOCRRecognizer:
    """Local OCR backend on easyocr.

    The first attempt reads the image as-is; later attempts run an OpenCV
    binarize/denoise/sharpen pass first.
    """

    lang: str = "en,ja"
    min_confidence: float = 0.0
    max_retries: int = 2
    use_preprocessing: bool = True
    max_text_length: int = MAX_TEXT_LENGTH
    errors_path: Path | None = None
    _reader: Any | None = None

    def _preprocess_image(self, image: Image.Image) -> Image.Image:
        if not self.use_preprocessing:
            return image
        try:
            return binarize_for_ocr(image)
        except cv2.error as e:
            record_error(self.errors_path, stage="ocr_preprocess", message=str(e))
            return image

    def _get_reader(self) -> Any:
        if self._reader is None:
            try:
                import easyocr
            except ImportError as e:
                raise OCREngineError("easyocr is required for image import. Install easyocr.") from e
            langs = [l.strip() for l in self.lang.split(",") if l.strip()]
            self._reader = easyocr.Reader(langs, gpu=False)
        return self._reader

    def _read_tokens(self, image: Image.Image) -> list[dict[str, Any]]:
        results = self._get_reader().readtext(np.array(image.convert("RGB")))
        tokens = []
        for (bbox, text, confidence) in results:
            if float(confidence) < self.min_confidence:
                continue
            tokens.append({
                "text": text,
                "confidence": float(confidence),
                "bbox_xyxy": _bounds(bbox),
            })
        return tokens

    def recognize(self, image: Image.Image) -> str:
        last_error: Exception | None = None
        for attempt in range(self.max_retries):
            processed = image if attempt == 0 else self._preprocess_image(image)
            try:
                tokens = self._read_tokens(processed)
            except OCRError:
                raise
            except Exception as e:
                last_error = e
                record_error(self.errors_path, stage="ocr", message=f"attempt={attempt + 1}: {e}")
                continue

            if tokens:
                return check_recognized_text("\n".join(tokens_to_lines(tokens)), self.max_text_length)

            if attempt < self.max_retries - 1:
                time.sleep(0.1)

        if last_error is not None:
            raise OCREngineError(str(last_error)) from last_error
        raise OCREmptyResponseError("no_text_detected")
