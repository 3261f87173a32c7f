"""fixture-proxy: record backend responses once, replay them offline."""

__version__ = "0.1.0"
