"""Base renderer and output format definitions."""

import colorsys
from enum import Enum
from typing import Protocol

from impact_visualizer.viz.models.manifest import ManifestTree
from impact_visualizer.viz.selection.coordinator import ViewSet


class OutputFormat(str, Enum):
    """Output format for rendering."""

    TEXT = "text"
    JSON = "json"


class ColorScheme:
    """Color scheme definitions for renderers."""

    # Base teal used by the manifest viewer, as HSL
    BASE_HUE = 178
    BASE_SATURATION = 100
    BASE_LIGHTNESS = 21

    LIGHTNESS_RANGE = (14, 86)
    SATURATION_RANGE = (20, 100)

    NOT_AVAILABLE = "#9ca3af"  # gray-400

    @classmethod
    def generate_color_scale(
        cls,
        count: int,
        *,
        hue: float | None = None,
        saturation: float | None = None,
        lightness: float | None = None,
        variation: str = "both",
    ) -> list[tuple[float, float, float]]:
        """Generate 1-10 HSL colors fanning out from a base color.

        Args:
            count: Number of colors (clamped to 1..10)
            hue: Base hue, 0-360
            saturation: Base saturation, 0-100
            lightness: Base lightness, 0-100
            variation: "lightness", "saturation" or "both"

        Returns:
            (hue, saturation, lightness) triples
        """
        hue = cls.BASE_HUE if hue is None else hue
        saturation = cls.BASE_SATURATION if saturation is None else saturation
        lightness = cls.BASE_LIGHTNESS if lightness is None else lightness
        min_light, max_light = cls.LIGHTNESS_RANGE
        min_sat, max_sat = cls.SATURATION_RANGE

        color_count = max(1, min(10, count))
        colors = []
        for i in range(color_count):
            new_saturation = saturation
            new_lightness = lightness
            progress = i / ((color_count - 1) or 1)

            if variation == "lightness":
                new_lightness = min_light + (max_light - min_light) * progress
            elif variation == "saturation":
                new_saturation = max_sat - (max_sat - min_sat) * progress
            elif variation == "both":
                half = color_count / 2
                if i < half:
                    new_lightness = min_light + (lightness - min_light) * (i / half)
                else:
                    second_half = (i - half) / half
                    new_saturation = saturation - (saturation - min_sat) * second_half
                    new_lightness = lightness + (max_light - lightness) * second_half

            colors.append((hue, round(new_saturation), round(new_lightness)))
        return colors

    @staticmethod
    def to_hex(color: tuple[float, float, float]) -> str:
        """Convert an HSL triple to a ``#rrggbb`` string."""
        hue, saturation, lightness = color
        red, green, blue = colorsys.hls_to_rgb(hue / 360, lightness / 100, saturation / 100)
        return "#{:02x}{:02x}{:02x}".format(
            round(red * 255), round(green * 255), round(blue * 255)
        )

    @classmethod
    def slice_colors(cls, count: int) -> list[str]:
        """Hex colors for ``count`` slices, cycling past ten."""
        if count <= 0:
            return []
        scale = [cls.to_hex(color) for color in cls.generate_color_scale(count)]
        return [scale[i % len(scale)] for i in range(count)]


class ViewRenderer(Protocol):
    """Protocol for view renderers."""

    format: OutputFormat

    def render(
        self,
        tree: ManifestTree,
        views: ViewSet,
        *,
        precision: int = 3,
        **options,
    ) -> str:
        """Render the projections of one selection.

        Args:
            tree: The manifest tree the views were projected from
            views: Table, pie and chart projections
            precision: Decimal places for values
            **options: Additional format-specific options

        Returns:
            Rendered output
        """
        ...
