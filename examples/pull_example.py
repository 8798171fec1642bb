"""Example: pull an image into a temporary root and list what arrived."""

import asyncio
import logging
import os
import sys
import tempfile

# Add parent directory to path
sys.path.insert(0, "src")

from image_runner import ImageRunnerError, acquire_image

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main(reference: str) -> int:
    """Pull an image and show its top-level directories."""
    with tempfile.TemporaryDirectory(prefix="image-runner-example-") as root:
        try:
            manifest = await acquire_image(reference, root)
        except ImageRunnerError as e:
            logger.error(f"Pull failed: {e}")
            return 1

        logger.info(f"Applied {len(manifest.layers)} layer(s)")
        for layer in manifest.layers:
            logger.info(f"  {layer.digest} ({layer.media_type})")

        logger.info(f"Root contents: {sorted(os.listdir(root))}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "alpine:latest")))
