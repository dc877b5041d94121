"""Class labels and per-pixel class maps for semantic segmentation models."""

from __future__ import annotations

import os

import numpy as np


def load_labels(path: str | os.PathLike) -> list[str]:
    """Read one label per line from a text file.

    An empty path means there are no labels. Raises RuntimeError if the file
    cannot be opened and ValueError if it holds no lines.
    """
    if not os.fspath(path):
        return []
    try:
        with open(path, encoding="utf-8", newline="") as handle:
            text = handle.read()
    except OSError as exc:
        raise RuntimeError(f"Can't open the labels file: {os.fspath(path)}") from exc
    labels = text.split("\n")
    if labels and labels[-1] == "":
        labels.pop()
    if not labels:
        raise ValueError(f"File is empty: {os.fspath(path)}")
    return labels


def _output_geometry(shape: tuple[int, ...]) -> tuple[int, int, int]:
    """Return channels, height and width of a CHW or NCHW output."""
    if len(shape) == 3:
        return 1, shape[1], shape[2]
    if len(shape) == 4:
        return shape[1], shape[2], shape[3]
    raise ValueError("Unexpected output tensor shape. Only 4D and 3D outputs are supported.")


def _resize_nearest(image: np.ndarray, width: int, height: int) -> np.ndarray:
    src_height, src_width = image.shape
    rows = np.minimum(np.arange(height) * src_height // height, src_height - 1)
    cols = np.minimum(np.arange(width) * src_width // width, src_width - 1)
    return image[rows[:, None], cols[None, :]]


def decode_segmentation(output, input_width: int, input_height: int) -> np.ndarray:
    """Turn a model output into a class map of the original image size.

    A single-channel integer output already holds class ids, which are
    saturated to 0..255. A floating output holds per-class scores, and each
    pixel takes the class with the highest score above -1 (class 0 if none).
    The map is resized with nearest-neighbour sampling to
    ``input_height`` x ``input_width`` and returned as uint8.
    """
    if input_width <= 0 or input_height <= 0:
        raise ValueError(
            f"image size must be positive, got {input_width}x{input_height}"
        )
    data = np.asarray(output)
    channels, height, width = _output_geometry(data.shape)
    if height <= 0 or width <= 0 or channels <= 0:
        raise ValueError(f"output has an empty dimension: {data.shape}")

    if channels == 1 and np.issubdtype(data.dtype, np.integer):
        predictions = data.reshape(height, width).astype(np.int64)
        class_map = np.clip(predictions, 0, 255).astype(np.uint8)
    elif np.issubdtype(data.dtype, np.floating):
        scores = data.reshape(-1, channels, height, width)[0].astype(np.float32)
        class_ids = np.argmax(scores, axis=0)
        class_ids = np.where(scores.max(axis=0) > -1.0, class_ids, 0)
        class_map = class_ids.astype(np.uint8)
    else:
        raise ValueError(
            f"unsupported output element type {data.dtype} for {channels} channels"
        )

    return _resize_nearest(class_map, input_width, input_height)