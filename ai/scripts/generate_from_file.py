#!/usr/bin/env python3
"""
Run the real doodle pipeline on an image file.

Calls Gemini with the configured GOOGLE_API_KEY, so it is a manual check,
not part of the test-suite.

Usage:
    python generate_from_file.py --input path/to/doodle.png --output path/to/render.png
"""

import argparse
import asyncio
import base64
import os
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "backend"))


def generate_from_file(input_path: str, output_path: str) -> bool:
    """Classify and render one drawing, write the render to *output_path*."""
    print("=" * 60)
    print("Doodle -> 3D render")
    print("=" * 60)

    if not os.path.exists(input_path):
        print(f"Error: Input file not found: {input_path}")
        return False

    print(f"Input: {input_path}")
    print(f"Output: {output_path}")

    from services.errors import ImageDataError
    from services.gallery_store import GalleryStore
    from services.pipeline import GenerationPipeline, get_generation_pipeline

    shared = get_generation_pipeline()
    pipeline = GenerationPipeline(
        classifier=shared.classifier,
        synthesizer=shared.synthesizer,
        store=GalleryStore(),
        max_side=shared.max_side,
    )

    with open(input_path, "rb") as f:
        image_data = base64.b64encode(f.read()).decode("ascii")

    try:
        record = asyncio.run(pipeline.run(image_data))
    except ImageDataError as e:
        print(f"\nRejected drawing: {e}")
        return False

    payload = record.image_url.split("base64,", 1)[1]
    Path(output_path).write_bytes(base64.b64decode(payload))

    print(f"\nDetected object: {record.object_type}")
    print(f"Sound cue: {record.sound_url}")
    print(f"Success! Output saved to: {output_path}")
    return True


def main():
    parser = argparse.ArgumentParser(description="Render a doodle with Gemini")
    parser.add_argument("--input", "-i", required=True, help="Path to the drawing (PNG/JPEG/WEBP)")
    parser.add_argument("--output", "-o", required=True, help="Path to write the render")

    args = parser.parse_args()

    success = generate_from_file(args.input, args.output)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
