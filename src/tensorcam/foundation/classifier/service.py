"""Classifier capability: pretrained MobileNet image classification."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
from PIL import Image

from tensorcam.common.errors import ClassifierLoadError
from tensorcam.common.logging import get_logger
from tensorcam.config import Config


# timm ImageNet-1k checkpoints per model and width multiplier
PRETRAINED_VARIANTS: dict[str, dict[float, str]] = {
    "mobilenet_v2": {
        0.5: "mobilenetv2_050.lamb_in1k",
        1.0: "mobilenetv2_100.ra_in1k",
        1.4: "mobilenetv2_140.ra_in1k",
    },
    "mobilenet_v3_small": {
        0.5: "mobilenetv3_small_050.lamb_in1k",
        0.75: "mobilenetv3_small_075.lamb_in1k",
        1.0: "mobilenetv3_small_100.lamb_in1k",
    },
    "mobilenet_v3_large": {
        0.75: "tf_mobilenetv3_large_075.in1k",
        1.0: "mobilenetv3_large_100.ra_in1k",
    },
}


@dataclass
class Prediction:
    """One classifier output."""

    label: str
    confidence: float


class ClassifierBackend:
    """Abstract classifier backend."""

    name = "abstract"

    @property
    def loaded(self) -> bool:
        raise NotImplementedError

    async def load(self) -> None:
        """Load the model. Raises ClassifierLoadError on failure."""
        raise NotImplementedError

    async def classify(self, image: np.ndarray) -> list[Prediction]:
        """Classify one RGB image, most confident first."""
        raise NotImplementedError

    def get_status(self) -> dict:
        """Get classifier status."""
        raise NotImplementedError


class MockClassifier(ClassifierBackend):
    """Mock classifier returning fixed predictions."""

    name = "mock"

    def __init__(
        self,
        predictions: Sequence[Prediction] | None = None,
        delay: float = 0.0,
        error: Exception | None = None,
    ) -> None:
        if predictions is None:
            predictions = [
                Prediction("tabby", 0.61),
                Prediction("Egyptian cat", 0.22),
                Prediction("tiger cat", 0.09),
            ]
        self.predictions = list(predictions)
        self.delay = delay
        self.error = error
        self.calls = 0
        self.shapes: list[tuple[int, ...]] = []
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def load(self) -> None:
        self._loaded = True

    async def classify(self, image: np.ndarray) -> list[Prediction]:
        self.calls += 1
        self.shapes.append(tuple(image.shape))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.predictions)

    def get_status(self) -> dict:
        return {"model": self.name, "loaded": self._loaded, "calls": self.calls}


class MobileNetClassifier(ClassifierBackend):
    """ImageNet classifier backed by a timm MobileNet checkpoint."""

    def __init__(self, config: Config) -> None:
        self.config = config
        self.name = config.classifier.model
        self.width_multiplier = config.classifier.width_multiplier
        self.logger = get_logger(
            "mobilenet_classifier", model=self.name, width_multiplier=self.width_multiplier
        )

        self._model: Any = None
        self._transform: Any = None
        self._categories: list[str] = []
        self._frames_processed = 0
        self._total_inference_ms = 0.0

    @property
    def loaded(self) -> bool:
        return self._model is not None

    @property
    def checkpoint(self) -> str:
        """timm checkpoint for the configured model and width multiplier.

        Raises:
            ClassifierLoadError: No pretrained weights exist for the combination.
        """
        widths = PRETRAINED_VARIANTS.get(self.name)
        if widths is None:
            raise ClassifierLoadError(f"Unknown model: {self.name}")
        try:
            return widths[self.width_multiplier]
        except KeyError:
            raise ClassifierLoadError(
                f"No pretrained weights for {self.name} at width multiplier "
                f"{self.width_multiplier:g}; available: {sorted(widths)}"
            ) from None

    async def load(self) -> None:
        if self.loaded:
            return

        checkpoint = self.checkpoint
        start_time = time.time()
        self.logger.info(
            "classifier_loading", checkpoint=checkpoint, device=self.config.classifier.device
        )

        try:
            await asyncio.to_thread(self._load_sync, checkpoint)
        except Exception as e:
            raise ClassifierLoadError(f"Failed to load {checkpoint}: {e}") from e

        self.logger.info(
            "classifier_loaded",
            classes=len(self._categories),
            load_time_ms=int((time.time() - start_time) * 1000),
        )

    def _load_sync(self, checkpoint: str) -> None:
        import timm
        from timm import data as timm_data

        model = timm.create_model(checkpoint, pretrained=True)
        model.eval()
        model.to(self.config.classifier.device)

        data_config = timm_data.resolve_model_data_config(model)
        self._transform = timm_data.create_transform(**data_config, is_training=False)
        self._categories = list(timm_data.ImageNetInfo().label_descriptions())
        self._model = model

    async def classify(self, image: np.ndarray) -> list[Prediction]:
        if not self.loaded:
            raise RuntimeError("Classifier not loaded")

        start_time = time.time()
        predictions = await asyncio.to_thread(self._classify_sync, image)

        self._frames_processed += 1
        self._total_inference_ms += (time.time() - start_time) * 1000
        return predictions

    def _classify_sync(self, image: np.ndarray) -> list[Prediction]:
        import torch

        batch = self._transform(Image.fromarray(image)).unsqueeze(0)
        batch = batch.to(self.config.classifier.device)

        with torch.inference_mode():
            logits = self._model(batch)

        probabilities = logits.softmax(dim=1)[0]
        top_k = min(self.config.classifier.top_k, probabilities.shape[0])
        values, indices = probabilities.topk(top_k)

        return [
            Prediction(label=self._categories[index], confidence=float(value))
            for value, index in zip(values.tolist(), indices.tolist())
        ]

    def get_status(self) -> dict:
        avg_ms = (
            self._total_inference_ms / self._frames_processed if self._frames_processed else 0.0
        )
        return {
            "model": self.name,
            "width_multiplier": self.width_multiplier,
            "checkpoint": PRETRAINED_VARIANTS.get(self.name, {}).get(self.width_multiplier),
            "loaded": self.loaded,
            "device": self.config.classifier.device,
            "parameters": (
                sum(p.numel() for p in self._model.parameters()) if self.loaded else 0
            ),
            "metrics": {
                "avg_inference_ms": round(avg_ms, 2),
                "total_frames_processed": self._frames_processed,
            },
        }


def create_classifier(config: Config, mock_mode: bool = False) -> ClassifierBackend:
    """Create the classifier backend for the current mode."""
    if mock_mode:
        return MockClassifier()
    return MobileNetClassifier(config)


async def load_classifier(config: Config, mock_mode: bool = False) -> ClassifierBackend:
    """Create a classifier and load its model."""
    classifier = create_classifier(config, mock_mode)
    await classifier.load()
    return classifier
