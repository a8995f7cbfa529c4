"""Classifier capability."""

from tensorcam.foundation.classifier.service import (
    PRETRAINED_VARIANTS,
    ClassifierBackend,
    MobileNetClassifier,
    MockClassifier,
    Prediction,
    create_classifier,
    load_classifier,
)

__all__ = [
    "PRETRAINED_VARIANTS",
    "ClassifierBackend",
    "MobileNetClassifier",
    "MockClassifier",
    "Prediction",
    "create_classifier",
    "load_classifier",
]
