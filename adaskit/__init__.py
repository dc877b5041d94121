"""Pose and segmentation decoding, result types, resource monitors and an asynchronous inference pipeline."""

__version__ = "0.1.0"