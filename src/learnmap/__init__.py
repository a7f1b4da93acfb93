"""learnmap — layout and incremental expansion of AI-generated learning maps."""

__version__ = "0.3.0"
