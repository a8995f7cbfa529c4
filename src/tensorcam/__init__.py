"""tensorcam - live camera classification with a pretrained MobileNet."""

__version__ = "0.1.0"

from tensorcam.config import Config, load_config

__all__ = ["Config", "load_config", "__version__"]
