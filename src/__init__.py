"""Visual screenshot comparison engine.

Compares a candidate screenshot against an accepted reference screenshot,
decides whether they match under a configurable tolerance, and produces
visual artifacts that explain any mismatch.

Architecture layers (strict one-way dependency):
    scripts/ → src/image_comparison/ → src/utils/

Key invariants:
    - Images are (H, W, 3) uint8 RGB numpy arrays; masks are (H, W, 4) RGBA
    - Opaque black mask pixels are ignored by every algorithm
    - Artifacts (marked image, difference image, mask) are written atomically
    - YAML-only configs, validated once at construction
"""

__version__ = "1.0.0"
