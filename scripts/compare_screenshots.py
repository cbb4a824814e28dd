"""Screenshot comparison CLI: accept baselines and compare candidates.

Subcommands:
    baseline  Store a screenshot as the accepted reference
    compare   Compare a candidate against a reference, write artifacts

Pipeline (compare):
    1. Load config (YAML) and apply command-line overrides
    2. Load reference and candidate PNGs
    3. Run ImageComparison against the reference's mask
    4. Write marked / difference images on mismatch, mask in training mode
    5. Optionally write a YAML report (result, config, provenance hashes)

Architecture:
    - compare_main(reference_path, candidate_path, ...) → dict
        * Callable function (used by test harnesses)
        * Returns: {equal, differences, size_changed, marked_path, ...}
    - CLI entry point: if __name__ == "__main__"

CLI:
    python scripts/compare_screenshots.py baseline --image shot.png \\
                                                   --reference screens/chrome/1-login.png
    python scripts/compare_screenshots.py compare --reference screens/chrome/1-login.png \\
                                                  --candidate shot.png --algorithm PIXELFUZZY \\
                                                  --color-tolerance 0.1 --report out/report.yaml

Output structure (next to the reference):
    <dir>/mask/<name>-mask.png
    <dir>/marked/<name>-marked.png
    <dir>/difference/<name>-difference.png

Exit codes:
    0  images equal
    1  images differ
    2  configuration or I/O error
"""

import argparse
import logging
import sys
from typing import Any, Dict, Optional

from src.image_comparison import (
    ArtifactIOError,
    ArtifactPaths,
    ComparisonError,
    ConfigurationError,
    ImageComparison,
    create_baseline,
    open_baseline,
)
from src.utils import fs, hashing, validators
from src.utils.logging_config import install_excepthook, push_context, setup_logging

logger = logging.getLogger(__name__)

EXIT_EQUAL = 0
EXIT_DIFFERENT = 1
EXIT_ERROR = 2


def compare_main(
    reference_path: str,
    candidate_path: str,
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    report_path: Optional[str] = None,
) -> Dict[str, Any]:
    """Compare a candidate screenshot against a stored reference.

    Parameters
    ----------
    reference_path : str
        Accepted reference PNG
    candidate_path : str
        Newly captured screenshot
    config_path : str, optional
        image_comparison.v1.yaml; schema defaults when omitted
    overrides : dict, optional
        Config field overrides (None values are ignored)
    report_path : str, optional
        Where to write a YAML report

    Returns
    -------
    dict
        Result summary: equal, differences, width, height, size_changed,
        mask_updated, marked_path, difference_path, config

    Raises
    ------
    ComparisonError
        Invalid configuration or unreadable/unwritable artifacts
    """
    if config_path:
        try:
            cfg = validators.load_comparison_config(config_path)
        except (FileNotFoundError, ValueError) as e:
            raise ConfigurationError(str(e)) from e
    else:
        cfg = validators.ComparisonConfigV1()

    overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
    engine = ImageComparison(cfg, **overrides)

    reference = open_baseline(reference_path)
    artifacts = ArtifactPaths.for_reference(reference.path)
    try:
        candidate = fs.load_image(candidate_path)
    except OSError as e:
        raise ArtifactIOError(f"Failed to read candidate image {candidate_path}: {e}") from e

    push_context(reference=reference.path.stem)
    result = engine.compare(
        reference.load(),
        candidate,
        artifacts.mask,
        artifacts.marked,
        artifacts.difference,
    )

    summary = {
        'equal': result.equal,
        'differences': len(result.differences),
        'width': result.width,
        'height': result.height,
        'size_changed': result.size_changed,
        'mask_updated': result.mask_updated,
        'marked_path': str(result.marked_path) if result.marked_path else None,
        'difference_path': str(result.difference_path) if result.difference_path else None,
        'config': validators.comparison_config_to_dict(engine.config),
    }

    if report_path:
        report = dict(summary)
        report['provenance'] = {
            'reference': str(reference.path),
            'reference_sha256': reference.sha256,
            'candidate': str(candidate_path),
            'candidate_pixels_sha256': hashing.sha256_array(candidate),
        }
        try:
            fs.atomic_yaml_dump(report, report_path)
        except RuntimeError as e:
            raise ArtifactIOError(f"Failed to write report {report_path}: {e}") from e
        logger.info("Report written to %s", report_path)

    return summary


def baseline_main(image_path: str, reference_path: str) -> Dict[str, Any]:
    """Accept a screenshot as the reference at `reference_path`."""
    try:
        image = fs.load_image(image_path)
    except OSError as e:
        raise ArtifactIOError(f"Failed to read image {image_path}: {e}") from e

    ref = create_baseline(image, reference_path)
    return {
        'reference_path': str(ref.path),
        'width': ref.width,
        'height': ref.height,
        'sha256': ref.sha256,
    }


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compare screenshots against accepted references"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console/file log level",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Optional log file path",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Write the log file as JSON lines",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    base = sub.add_parser("baseline", help="Store a screenshot as reference")
    base.add_argument("--image", type=str, required=True, help="Screenshot to accept (PNG)")
    base.add_argument("--reference", type=str, required=True, help="Reference destination (PNG)")

    comp = sub.add_parser("compare", help="Compare a candidate against a reference")
    comp.add_argument("--reference", type=str, required=True, help="Reference PNG")
    comp.add_argument("--candidate", type=str, required=True, help="Candidate screenshot PNG")
    comp.add_argument("--config", type=str, default=None, help="Path to comparison config")
    comp.add_argument(
        "--algorithm",
        type=str,
        default=None,
        help="EXACTLY, PIXELFUZZY or FUZZY (overrides config)",
    )
    comp.add_argument("--block-size", type=int, default=None, help="Fuzzy block size (px)")
    comp.add_argument("--color-tolerance", type=float, default=None, help="Colour tolerance [0, 1]")
    comp.add_argument(
        "--pixel-tolerance",
        type=float,
        default=None,
        help="Per-block pixel tolerance for Fuzzy [0, 1]",
    )
    comp.add_argument(
        "--training",
        action="store_true",
        default=None,
        help="Absorb differences into the mask instead of failing",
    )
    comp.add_argument(
        "--close-mask",
        action="store_true",
        default=None,
        help="Close gaps between masked regions after training",
    )
    comp.add_argument(
        "--difference-image",
        action="store_true",
        default=None,
        help="Also write a greyscale difference image on mismatch",
    )
    comp.add_argument("--report", type=str, default=None, help="Write a YAML report here")
    return parser


def main(argv=None) -> int:
    """CLI entry point."""
    args = _build_parser().parse_args(argv)

    setup_logging(
        log_level=args.log_level,
        log_file=args.log_file,
        json=args.json_logs,
        quiet_libs=["PIL"],
        context={"app": "compare_screenshots"},
    )
    install_excepthook()

    try:
        if args.command == "baseline":
            info = baseline_main(args.image, args.reference)
            print(f"Reference stored: {info['reference_path']} ({info['width']}x{info['height']})")
            return EXIT_EQUAL

        summary = compare_main(
            reference_path=args.reference,
            candidate_path=args.candidate,
            config_path=args.config,
            overrides={
                'algorithm': args.algorithm,
                'block_size': args.block_size,
                'color_tolerance': args.color_tolerance,
                'pixel_tolerance_per_block': args.pixel_tolerance,
                'training_mode': args.training,
                'close_mask': args.close_mask,
                'difference_image': args.difference_image,
            },
            report_path=args.report,
        )
    except ComparisonError as e:
        logger.error("%s", e)
        return EXIT_ERROR

    if summary['equal']:
        print("Images equal")
        return EXIT_EQUAL

    print(f"Images differ: {summary['differences']} pixels")
    if summary['marked_path']:
        print(f"Marked image: {summary['marked_path']}")
    if summary['difference_path']:
        print(f"Difference image: {summary['difference_path']}")
    return EXIT_DIFFERENT


if __name__ == "__main__":
    sys.exit(main())
