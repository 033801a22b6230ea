import base64
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

from core.config import settings
from core.exceptions import ImageProcessingError
from core.logger import app_logger


def optimize_image(
        source: Union[str, Path],
        max_width: int = None,
        quality: int = None,
        output_dir: Optional[Union[str, Path]] = None,
) -> Path:
    """
    Downscale a captured photo and re-encode it as JPEG before upload.

    The result is a new temporary file no wider than ``max_width`` pixels
    (aspect ratio kept, never upscaled). The source file is left untouched.
    """
    max_width = max_width or settings.IMAGE_MAX_WIDTH
    quality = quality or settings.IMAGE_JPEG_QUALITY

    try:
        with Image.open(source) as img:
            img.load()
            if img.width > max_width:
                height = max(1, round(img.height * max_width / img.width))
                img = img.resize((max_width, height), Image.LANCZOS)
            if img.mode != "RGB":
                img = img.convert("RGB")

            fd, out_path = tempfile.mkstemp(suffix=".jpg", prefix="plant_", dir=output_dir)
            try:
                with os.fdopen(fd, "wb") as out:
                    img.save(out, format="JPEG", quality=quality)
            except Exception:
                os.remove(out_path)
                raise
    except (OSError, UnidentifiedImageError, ValueError) as e:
        app_logger.error(f"❗ Error optimizing image {source}: {e}")
        raise ImageProcessingError(f"could not process image {source}: {e}") from e

    return Path(out_path)


def encode_data_uri(path: Union[str, Path]) -> str:
    """Base64 data URI in the form the recognition API expects."""
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise ImageProcessingError(f"could not read image {path}: {e}") from e
    return f"data:image/jpeg;base64,{base64.b64encode(data).decode('utf-8')}"
