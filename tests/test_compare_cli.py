"""Test the compare_screenshots CLI.

Validates scripts.compare_screenshots end to end:
    - baseline subcommand stores a reference
    - compare exits 0 when equal, 1 when different
    - Config file and command-line overrides combine
    - YAML report carries result, config and provenance
    - Configuration and I/O errors exit 2

Test cases:
    - test_baseline_then_equal()
    - test_compare_different_writes_marked()
    - test_compare_with_config_and_overrides()
    - test_compare_report()
    - test_bad_algorithm_exit_code()
    - test_missing_reference_exit_code()
    - test_compare_main_callable()

Run:
    pytest tests/test_compare_cli.py -v
"""

import logging
import sys

import pytest

from scripts import compare_screenshots
from src.utils import fs
from src.utils.logging_config import pop_context

from conftest import solid, paint, WHITE, BLACK


@pytest.fixture(autouse=True)
def restore_logging(monkeypatch):
    """main() configures the root logger; undo it after each test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
    pop_context()
    logging.captureWarnings(False)


@pytest.fixture
def screens(tmp_path):
    """Reference-ready and candidate PNGs on disk."""
    white = tmp_path / "white.png"
    changed = tmp_path / "changed.png"
    fs.atomic_save_image(solid(40, 40, WHITE), white)
    fs.atomic_save_image(paint(solid(40, 40, WHITE), 10, 10, 10, 10, BLACK), changed)
    return {'white': white, 'changed': changed, 'reference': tmp_path / "refs" / "login.png"}


def _baseline(screens):
    return compare_screenshots.main([
        "baseline", "--image", str(screens['white']), "--reference", str(screens['reference'])
    ])


def test_baseline_then_equal(screens):
    """Stored reference compares equal to its source screenshot."""
    assert _baseline(screens) == compare_screenshots.EXIT_EQUAL
    assert screens['reference'].exists()

    code = compare_screenshots.main([
        "compare", "--reference", str(screens['reference']), "--candidate", str(screens['white'])
    ])

    assert code == compare_screenshots.EXIT_EQUAL


def test_compare_different_writes_marked(screens):
    """Differences exit 1 and produce the marked image."""
    _baseline(screens)

    code = compare_screenshots.main([
        "compare", "--reference", str(screens['reference']),
        "--candidate", str(screens['changed']), "--block-size", "10",
    ])

    assert code == compare_screenshots.EXIT_DIFFERENT
    assert (screens['reference'].parent / "marked" / "login-marked.png").exists()


def test_compare_with_config_and_overrides(screens, tmp_path):
    """File config is loaded; flags override it."""
    _baseline(screens)
    cfg_path = tmp_path / "cmp.yaml"
    fs.atomic_yaml_dump({'schema': 'image_comparison.v1', 'algorithm': 'EXACTLY'}, cfg_path)

    summary = compare_screenshots.compare_main(
        str(screens['reference']),
        str(screens['changed']),
        config_path=str(cfg_path),
        overrides={'training_mode': True, 'block_size': None},
    )

    assert summary['equal']
    assert summary['mask_updated']
    assert summary['config']['algorithm'] == "EXACTLY"
    assert summary['config']['training_mode'] is True
    assert (screens['reference'].parent / "mask" / "login-mask.png").exists()


def test_compare_report(screens, tmp_path):
    """--report writes result, config and provenance hashes."""
    _baseline(screens)
    report = tmp_path / "out" / "report.yaml"

    code = compare_screenshots.main([
        "compare", "--reference", str(screens['reference']),
        "--candidate", str(screens['changed']),
        "--algorithm", "PIXELFUZZY", "--difference-image", "--report", str(report),
    ])

    data = fs.load_yaml(report)
    assert code == compare_screenshots.EXIT_DIFFERENT
    assert data['equal'] is False
    assert data['differences'] == 100
    assert data['config']['algorithm'] == "PIXELFUZZY"
    assert data['difference_path'].endswith("login-difference.png")
    assert len(data['provenance']['reference_sha256']) == 64


def test_bad_algorithm_exit_code(screens):
    """Unknown algorithm → exit 2, nothing written."""
    _baseline(screens)

    code = compare_screenshots.main([
        "compare", "--reference", str(screens['reference']),
        "--candidate", str(screens['changed']), "--algorithm", "SIFT",
    ])

    assert code == compare_screenshots.EXIT_ERROR
    assert not (screens['reference'].parent / "marked").exists()


def test_missing_reference_exit_code(screens):
    """Missing reference → exit 2."""
    code = compare_screenshots.main([
        "compare", "--reference", str(screens['reference']), "--candidate", str(screens['white'])
    ])

    assert code == compare_screenshots.EXIT_ERROR


def test_compare_main_callable(screens):
    """compare_main() returns a summary dict without any CLI setup."""
    _baseline(screens)

    summary = compare_screenshots.compare_main(str(screens['reference']), str(screens['white']))

    assert summary['equal'] is True
    assert summary['marked_path'] is None
    assert (summary['width'], summary['height']) == (40, 40)
