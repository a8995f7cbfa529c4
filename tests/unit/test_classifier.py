"""Tests for classifier backends."""

from __future__ import annotations

import numpy as np
import pytest

from tensorcam.common.errors import ClassifierLoadError
from tensorcam.config import Config
from tensorcam.foundation.classifier import (
    MobileNetClassifier,
    MockClassifier,
    Prediction,
    create_classifier,
    load_classifier,
)


class TestMockClassifier:
    """Tests for the mock classifier."""

    async def test_default_predictions(self):
        classifier = await load_classifier(Config(), mock_mode=True)

        assert isinstance(classifier, MockClassifier)
        assert classifier.loaded

        predictions = await classifier.classify(np.zeros((200, 152, 3), dtype=np.uint8))
        assert [p.label for p in predictions] == ["tabby", "Egyptian cat", "tiger cat"]
        assert predictions[0].confidence >= predictions[-1].confidence

    async def test_error(self):
        classifier = MockClassifier(error=RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            await classifier.classify(np.zeros((2, 2, 3), dtype=np.uint8))
        assert classifier.calls == 1


class TestMobileNetClassifier:
    """Tests for the timm-backed classifier."""

    @pytest.fixture
    def fake_timm(self, monkeypatch):
        """Replace checkpoint download and model construction with a tiny model."""
        torch = pytest.importorskip("torch")
        timm = pytest.importorskip("timm")
        from timm import data as timm_data

        built: list[str] = []

        class FixedLogits(torch.nn.Module):
            def forward(self, x):
                return torch.tensor([[0.1, 3.0, 2.0, -1.0]]).repeat(x.shape[0], 1)

        class FakeImageNetInfo:
            def label_descriptions(self):
                return ["kite", "cat", "dog", "zebra"]

        def create_model(name, pretrained=False):
            built.append(name)
            assert pretrained
            return FixedLogits()

        def create_transform(input_size, is_training=False, **kwargs):
            assert not is_training
            return lambda image: torch.zeros(input_size)

        monkeypatch.setattr(timm, "create_model", create_model)
        monkeypatch.setattr(
            timm_data, "resolve_model_data_config", lambda model: {"input_size": (3, 8, 8)}
        )
        monkeypatch.setattr(timm_data, "create_transform", create_transform)
        monkeypatch.setattr(timm_data, "ImageNetInfo", FakeImageNetInfo)
        return built

    async def test_load_and_classify(self, fake_timm):
        config = Config()
        config.classifier.top_k = 2
        classifier = MobileNetClassifier(config)

        assert not classifier.loaded
        await classifier.load()
        assert classifier.loaded
        assert fake_timm == ["mobilenetv3_small_050.lamb_in1k"]

        predictions = await classifier.classify(np.zeros((200, 152, 3), dtype=np.uint8))

        assert [p.label for p in predictions] == ["cat", "dog"]
        assert predictions[0].confidence > predictions[1].confidence
        assert 0.0 < predictions[0].confidence < 1.0

        status = classifier.get_status()
        assert status["loaded"] is True
        assert status["checkpoint"] == "mobilenetv3_small_050.lamb_in1k"
        assert status["metrics"]["total_frames_processed"] == 1

    @pytest.mark.parametrize(
        "model,width,checkpoint",
        [
            ("mobilenet_v2", 0.5, "mobilenetv2_050.lamb_in1k"),
            ("mobilenet_v2", 1.4, "mobilenetv2_140.ra_in1k"),
            ("mobilenet_v3_small", 0.75, "mobilenetv3_small_075.lamb_in1k"),
            ("mobilenet_v3_small", 1.0, "mobilenetv3_small_100.lamb_in1k"),
            ("mobilenet_v3_large", 0.75, "tf_mobilenetv3_large_075.in1k"),
        ],
    )
    async def test_width_multiplier_selects_checkpoint(
        self, fake_timm, model, width, checkpoint
    ):
        config = Config()
        config.classifier.model = model
        config.classifier.width_multiplier = width
        classifier = MobileNetClassifier(config)

        await classifier.load()

        assert classifier.checkpoint == checkpoint
        assert fake_timm == [checkpoint]

    async def test_width_multiplier_changes_architecture(self, monkeypatch):
        """Narrower multipliers build smaller networks with the same classes."""
        timm = pytest.importorskip("timm")
        real_create_model = timm.create_model

        # Same architectures, random weights: no download needed
        monkeypatch.setattr(
            timm,
            "create_model",
            lambda name, pretrained=False: real_create_model(name, pretrained=False),
        )

        parameters = {}
        for width in (0.5, 1.0):
            config = Config()
            config.classifier.width_multiplier = width
            classifier = MobileNetClassifier(config)
            await classifier.load()

            predictions = await classifier.classify(np.zeros((200, 152, 3), dtype=np.uint8))
            assert len(predictions) == 3
            parameters[width] = classifier.get_status()["parameters"]

        assert 0 < parameters[0.5] < parameters[1.0]

    async def test_top_k_capped_by_classes(self, fake_timm):
        config = Config()
        config.classifier.top_k = 10
        classifier = MobileNetClassifier(config)
        await classifier.load()

        predictions = await classifier.classify(np.zeros((200, 152, 3), dtype=np.uint8))

        assert len(predictions) == 4

    async def test_load_is_once(self, fake_timm):
        classifier = MobileNetClassifier(Config())
        await classifier.load()
        await classifier.load()

        assert len(fake_timm) == 1

    @pytest.mark.parametrize(
        "model,width",
        [("mobilenet_v2", 0.25), ("mobilenet_v3_large", 0.5), ("mobilenet_v3_small", 1.4)],
    )
    async def test_unsupported_width_multiplier(self, fake_timm, model, width):
        config = Config()
        config.classifier.model = model
        config.classifier.width_multiplier = width
        classifier = MobileNetClassifier(config)

        with pytest.raises(ClassifierLoadError, match="width multiplier"):
            await classifier.load()
        assert not classifier.loaded
        assert fake_timm == []

    async def test_load_failure_wrapped(self, monkeypatch):
        timm = pytest.importorskip("timm")

        def broken(name, pretrained=False):
            raise RuntimeError("no network")

        monkeypatch.setattr(timm, "create_model", broken)
        classifier = MobileNetClassifier(Config())

        with pytest.raises(ClassifierLoadError, match="no network"):
            await classifier.load()

    async def test_classify_before_load(self):
        classifier = MobileNetClassifier(Config())

        with pytest.raises(RuntimeError):
            await classifier.classify(np.zeros((2, 2, 3), dtype=np.uint8))

    def test_factory(self):
        assert isinstance(create_classifier(Config()), MobileNetClassifier)
        assert isinstance(create_classifier(Config(), mock_mode=True), MockClassifier)



def test_prediction_fields():
    prediction = Prediction("cat", 0.9)

    assert prediction.label == "cat"
    assert prediction.confidence == 0.9
