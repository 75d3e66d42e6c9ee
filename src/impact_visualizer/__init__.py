"""Impact Visualizer - sustainability impact manifest explorer."""

__version__ = "0.1.0"
