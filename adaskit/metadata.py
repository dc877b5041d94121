"""Input data handed to models and metadata carried alongside it through a pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class InputData:
    """Base of all model inputs."""


@dataclass
class ImageInputData(InputData):
    input_image: Any = None


@dataclass
class MetaData:
    """Base of all per-frame metadata passed through a pipeline untouched."""


@dataclass
class ImageMetaData(MetaData):
    """Original frame and the monotonic time at which it was captured."""

    img: Any = None
    time_stamp: float = 0.0


@dataclass
class ClassificationImageMetaData(ImageMetaData):
    """Image metadata with the ground-truth class of the frame."""

    ground_truth_id: int = 0

    def __init__(self, img: Any, time_stamp: float, ground_truth_id: int) -> None:
        super().__init__(img, time_stamp)
        self.ground_truth_id = ground_truth_id