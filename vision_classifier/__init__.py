"""Vision classifier demo: model-bundle server and webcam capture loop."""

__version__ = "0.1.0"
