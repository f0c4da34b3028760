"""
Tests für Amplituden-Farbzuordnung.
"""

import pytest
import numpy as np

from audio_preview.core.errors import InvalidArgument
from audio_preview.core.colormap import (
    GRADIENT_ANCHORS,
    color_for,
    colorize,
    normalize_level,
)


class TestNormalizeLevel:
    """Tests für die dB-Normalisierung."""

    def test_full_scale(self):
        """0 dB entspricht Level 1."""
        assert normalize_level(1.0, 90) == pytest.approx(1.0)

    def test_floor(self):
        """Alles unter -range ist Level 0."""
        assert normalize_level(1e-6, 90) == 0.0
        assert normalize_level(0.0, 90) == 0.0

    def test_midpoint(self):
        """-45 dB bei 90 dB Bereich liegt in der Mitte."""
        assert normalize_level(10 ** (-45 / 20), 90) == pytest.approx(0.5)

    def test_above_full_scale_is_clamped(self):
        """Werte über 0 dB werden auf 1 begrenzt."""
        assert normalize_level(4.0, 60) == 1.0


class TestColorFor:
    """Tests für einzelne Farbwerte."""

    def test_silence_is_black(self):
        """Stille ist schwarz."""
        assert color_for(0.0, 90).rgb == (0, 0, 0)

    def test_full_scale_is_white(self):
        """Vollaussteuerung ist weiß."""
        assert color_for(1.0, 90).rgb == (255, 255, 255)

    def test_anchor_colors(self):
        """An den Stützstellen werden die Ankerfarben exakt getroffen."""
        for i, anchor in enumerate(GRADIENT_ANCHORS):
            db = -90 + 90 * i / 6
            color = color_for(10 ** (db / 20), 90)

            assert color.rgb == pytest.approx(tuple(anchor), abs=1)

    def test_monotonic(self):
        """Lautere Zellen sind komponentenweise nie dunkler."""
        magnitudes = np.geomspace(1e-6, 1.0, 400)
        colors = [color_for(m, 90).rgb for m in magnitudes]

        for a, b in zip(colors, colors[1:]):
            assert all(cb >= ca for ca, cb in zip(a, b))

    def test_deterministic(self):
        """Gleiche Eingabe, gleiche Farbe."""
        assert color_for(0.123, 60) == color_for(0.123, 60)

    def test_components_are_integers(self):
        """Komponenten sind ganze Zahlen in [0, 255]."""
        color = color_for(0.05, 90)

        assert all(isinstance(c, int) and 0 <= c <= 255 for c in color.rgb)

    def test_css(self):
        """CSS-Darstellung für den Canvas."""
        assert color_for(1.0, 90).css == "rgb(255,255,255)"

    @pytest.mark.parametrize("dynamic_range", [0, -10])
    def test_invalid_range(self, dynamic_range):
        """range <= 0 wird abgelehnt."""
        with pytest.raises(InvalidArgument):
            color_for(0.5, dynamic_range)


class TestColorize:
    """Tests für ganze Matrizen."""

    def test_shape_and_dtype(self):
        """(frames, bins) wird zu (frames, bins, 3) uint8."""
        image = colorize(np.random.default_rng(0).random((7, 33)), 90)

        assert image.shape == (7, 33, 3)
        assert image.dtype == np.uint8

    def test_matches_single_cell(self):
        """Matrix und Einzelwerte liefern identische Farben."""
        matrix = np.array([[0.0, 0.001, 0.02], [0.3, 0.7, 1.0]])
        image = colorize(matrix, 80)

        for (i, j), value in np.ndenumerate(matrix):
            assert tuple(image[i, j]) == color_for(value, 80).rgb

    def test_empty_matrix(self):
        """Leere Matrix ergibt leeres Bild."""
        assert colorize(np.zeros((0, 513)), 90).shape == (0, 513, 3)
