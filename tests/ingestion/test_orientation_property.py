"""Property-based tests for orientation classification.

**Feature: tubely, Property 1: Orientation Classification**
"""

from hypothesis import assume, given, settings, strategies as st

from tubely.modules.ingestion.orientation import Orientation, classify_orientation

dimension_strategy = st.integers(min_value=1, max_value=20_000)


class TestOrientationClassification:
    """Property tests for exact 16:9 / 9:16 classification."""

    @given(height=dimension_strategy)
    @settings(max_examples=200)
    def test_exact_widescreen_is_landscape(self, height: int) -> None:
        """**Feature: tubely, Property 1: Orientation Classification**

        For any height, a width of floor(16 * height / 9) SHALL classify as landscape.
        """
        width = (16 * height) // 9

        assert classify_orientation(width, height) == Orientation.LANDSCAPE

    @given(width=st.integers(min_value=2, max_value=20_000))
    @settings(max_examples=200)
    def test_exact_vertical_is_portrait(self, width: int) -> None:
        """**Feature: tubely, Property 1: Orientation Classification**

        For any width, a height of floor(16 * width / 9) SHALL classify as portrait.
        (1x1 satisfies both ratios and is classified landscape first.)
        """
        height = (16 * width) // 9

        assert classify_orientation(width, height) == Orientation.PORTRAIT

    @given(width=dimension_strategy, height=dimension_strategy)
    @settings(max_examples=500)
    def test_everything_else_is_other(self, width: int, height: int) -> None:
        """**Feature: tubely, Property 1: Orientation Classification**

        For any pair matching neither exact ratio, the result SHALL be other.
        """
        assume(width != (16 * height) // 9)
        assume(height != (16 * width) // 9)

        assert classify_orientation(width, height) == Orientation.OTHER

    @given(width=dimension_strategy, height=dimension_strategy)
    @settings(max_examples=100)
    def test_classification_is_deterministic(self, width: int, height: int) -> None:
        """**Feature: tubely, Property 1: Orientation Classification**"""
        assert classify_orientation(width, height) == classify_orientation(width, height)

    def test_full_hd_landscape(self) -> None:
        assert classify_orientation(1920, 1080) == Orientation.LANDSCAPE

    def test_full_hd_portrait(self) -> None:
        assert classify_orientation(1080, 1920) == Orientation.PORTRAIT

    def test_square_is_other(self) -> None:
        assert classify_orientation(1000, 1000) == Orientation.OTHER

    def test_near_widescreen_is_other(self) -> None:
        """Off-by-one geometry is not rounded into a category."""
        assert classify_orientation(1921, 1080) == Orientation.OTHER
        assert classify_orientation(1080, 1921) == Orientation.OTHER

    def test_orientation_values_are_key_prefixes(self) -> None:
        assert {o.value for o in Orientation} == {"landscape", "portrait", "other"}
