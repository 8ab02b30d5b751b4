"""Sherpa-ONNX adapter for offline speech recognition with token timestamps."""

from .recognizer import SherpaRecognizerAdapter

__all__ = ["SherpaRecognizerAdapter"]
