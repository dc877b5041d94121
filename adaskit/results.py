"""Result containers produced by models and pipelines."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ResultBase:
    """Common part of every result: the frame it belongs to and its metadata."""

    frame_id: int = -1
    meta_data: Any = None

    def is_empty(self) -> bool:
        return self.frame_id < 0


@dataclass
class InternalImageModelData:
    """Size of the image that was fed to a model."""

    input_img_width: int
    input_img_height: int


@dataclass
class InternalScaleData(InternalImageModelData):
    """Image size together with the scale factors used to resize it."""

    scale_x: float = 1.0
    scale_y: float = 1.0


@dataclass
class InferenceResult(ResultBase):
    """Raw output tensors of one inference, keyed by output name."""

    internal_model_data: Any = None
    outputs_data: dict[str, Any] = field(default_factory=dict)

    def first_output(self) -> Any:
        """Return the output whose name sorts first.

        Raises IndexError if there are no outputs.
        """
        if not self.outputs_data:
            raise IndexError("Outputs map is empty.")
        return self.outputs_data[min(self.outputs_data)]

    def is_empty(self) -> bool:
        return not self.outputs_data


@dataclass
class Classification:
    id: int
    label: str
    score: float


@dataclass
class ClassificationResult(ResultBase):
    top_labels: list[Classification] = field(default_factory=list)


@dataclass
class DetectedObject:
    """A labelled, scored rectangle."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    label_id: int = 0
    label: str = ""
    confidence: float = 0.0


@dataclass
class DetectionResult(ResultBase):
    objects: list[DetectedObject] = field(default_factory=list)


@dataclass
class RetinaFaceDetectionResult(DetectionResult):
    landmarks: list[tuple[float, float]] = field(default_factory=list)


@dataclass
class ImageResult(ResultBase):
    result_image: Any = None


@dataclass
class HumanPose:
    keypoints: list[tuple[float, float]] = field(default_factory=list)
    score: float = 0.0


@dataclass
class HumanPoseResult(ResultBase):
    poses: list[HumanPose] = field(default_factory=list)