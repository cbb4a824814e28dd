"""Test difference rendering.

Tests for src.image_comparison.render:
    - Marking colour: green for reddish regions, red otherwise
    - Marking borders follow the fixed 10×10 grid, clipped at the edges
    - mark_differences draws only on touched blocks
    - Border mismatch strips are solid red
    - Difference image greyscale magnitude

Test cases:
    - test_mark_colors()
    - test_marking_border_interior_block()
    - test_marking_border_remainder_block()
    - test_marking_border_empty()
    - test_mark_differences_in_place()
    - test_mark_image_borders()
    - test_difference_image()

Run:
    pytest tests/test_render.py -v
"""

import numpy as np

from src.image_comparison import render
from src.image_comparison.algorithms import DifferenceSet

from conftest import solid, WHITE, BLACK, RED, GREEN


def test_mark_colors():
    """Green only where red dominates by at least 30 over green."""
    ref = np.array([[(200, 0, 0), (128, 128, 128), (0, 0, 200), (200, 180, 0), (200, 170, 0)]], dtype=np.uint8)
    cand = ref.copy()

    colors = render.mark_colors(ref, cand)

    assert tuple(colors[0, 0]) == GREEN
    assert tuple(colors[0, 1]) == RED
    assert tuple(colors[0, 2]) == RED
    assert tuple(colors[0, 3]) == RED
    assert tuple(colors[0, 4]) == GREEN


def test_mark_colors_uses_average():
    """The colour is chosen from the reference/candidate average."""
    ref = np.array([[(255, 0, 0)]], dtype=np.uint8)
    cand = np.array([[(0, 0, 255)]], dtype=np.uint8)

    # Average (127.5, 0, 127.5): red ties blue → red
    assert tuple(render.mark_colors(ref, cand)[0, 0]) == RED


def test_marking_border_interior_block():
    """One differing pixel outlines its whole 10×10 block."""
    diffs = DifferenceSet.from_coords([(15, 3)], 30, 30)

    border = render.marking_border_map(diffs)

    expected = np.zeros((30, 30), dtype=bool)
    expected[0, 10:20] = True
    expected[9, 10:20] = True
    expected[0:10, 10] = True
    expected[0:10, 19] = True
    np.testing.assert_array_equal(border, expected)


def test_marking_border_remainder_block():
    """Edge blocks use their clipped span; nothing is drawn outside the image."""
    diffs = DifferenceSet.from_coords([(22, 22)], 25, 25)

    border = render.marking_border_map(diffs)

    assert border.shape == (25, 25)
    assert border[20, 20:25].all() and border[24, 20:25].all()
    assert border[20:25, 20].all() and border[20:25, 24].all()
    assert not border[21:24, 21:24].any()
    assert border.sum() == 16


def test_marking_border_empty():
    """No differences → no border."""
    assert not render.marking_border_map(DifferenceSet.empty(12, 9)).any()


def test_mark_differences_in_place():
    """Borders are drawn into the output; the rest is untouched."""
    ref = solid(30, 30, WHITE)
    cand = ref.copy()
    cand[3, 15] = BLACK
    diffs = DifferenceSet.from_coords([(15, 3)], 30, 30)
    output = cand.copy()

    blocks = render.mark_differences(output, ref, cand, diffs)

    assert blocks == 1
    assert tuple(output[0, 10]) == RED
    assert tuple(output[9, 19]) == RED
    assert tuple(output[3, 15]) == BLACK
    assert np.all(output[10:] == 255)


def test_mark_image_borders():
    """Everything right of prior_width and below prior_height turns red."""
    output = solid(8, 6, WHITE)

    render.mark_image_borders(output, prior_width=5, prior_height=4)

    assert np.all(output[:, 5:] == RED)
    assert np.all(output[4:, :] == RED)
    assert np.all(output[:4, :5] == 255)


def test_mark_image_borders_noop_when_unchanged():
    """Prior size equal to the image size paints nothing."""
    output = solid(8, 6, WHITE)

    render.mark_image_borders(output, prior_width=8, prior_height=6)

    assert np.all(output == 255)


def test_difference_image():
    """Identical → black; black vs white → white; single channel (H, W)."""
    ref = solid(4, 2, BLACK)
    cand = ref.copy()
    cand[:, 2:] = WHITE

    diff = render.difference_image(ref, cand)

    assert diff.shape == (2, 4) and diff.dtype == np.uint8
    assert np.all(diff[:, :2] == 0)
    assert np.all(diff[:, 2:] == 255)
