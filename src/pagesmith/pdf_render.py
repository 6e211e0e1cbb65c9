"""PDF rendering helpers."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING, Any

try:
    import fitz
except Exception:  # pragma: no cover - optional dependency at runtime
    fitz: Any
    fitz = None

from pydantic import BaseModel, ConfigDict, Field

from pagesmith.exceptions import EngineIOError
from pagesmith.logging import get_logger
from pagesmith.typing.models import RenderedPage

if TYPE_CHECKING:
    from pagesmith.engine import FitzDocument
    from pagesmith.settings import Settings

logger = get_logger(__name__)

_MIME_BY_FORMAT = {
    "png": "image/png",
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
}


class RasterizerConfig(BaseModel):
    """Process-wide rasterizer options."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_width: int = Field(default=1200, ge=1)
    anti_aliasing: int = Field(default=8, ge=0, le=8)
    display_errors: bool = False
    image_format: str = "png"

    @classmethod
    def from_settings(cls, settings: Settings) -> RasterizerConfig:
        """Build the configuration from runtime settings."""
        return cls(
            max_width=settings.render_max_width,
            anti_aliasing=settings.render_anti_aliasing,
            display_errors=settings.render_display_errors,
        )


class FitzRasterizer:
    """Renders pages with PyMuPDF. Obtain it from `initialize_rasterizer`."""

    def __init__(self, config: RasterizerConfig) -> None:
        self.config = config

    def render_page(
        self,
        document: FitzDocument,
        page_number: int,
        target_width: int | None = None,
        rotation: int = 0,
    ) -> RenderedPage:
        """Render one page to an image `target_width` pixels wide.

        `rotation` is added to the page's own rotation. The returned
        `render_scale` is pixels per point of the page as displayed, so
        `natural_width == displayed_page_width * render_scale`.

        Args:
            document: Loaded document.
            page_number: Page to render (1-based).
            target_width: Output width in pixels, defaults to `config.max_width`.
            rotation: Extra clockwise rotation in degrees.

        Raises:
            EngineIOError: If PyMuPDF is unavailable, the page does not exist or rendering fails.

        Returns:
            RenderedPage: Image and its dimensions.
        """
        if fitz is None:
            raise EngineIOError(message="PyMuPDF is required for PDF rendering")

        normalized_format = self.config.image_format.lower()
        if normalized_format not in _MIME_BY_FORMAT:
            raise EngineIOError(message=f"Unsupported image format: {self.config.image_format}")
        if not 1 <= page_number <= document.page_count:
            raise EngineIOError(message=f"Page {page_number} does not exist")
        if rotation % 90:
            raise EngineIOError(message=f"Rotation must be a multiple of 90 degrees, got {rotation}")

        width = target_width or self.config.max_width
        try:
            page = document.native.load_page(page_number - 1)
            displayed = page.rect
            displayed_width = displayed.height if rotation % 180 else displayed.width
            scale = width / displayed_width
            pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale).prerotate(rotation % 360), alpha=False)
            image_bytes = pix.tobytes(output=normalized_format)
        except Exception as exc:  # pragma: no cover - depends on file and fitz internals
            raise EngineIOError(message=f"Failed to render page {page_number}") from exc

        return RenderedPage(
            page_number=page_number,
            mime_type=_MIME_BY_FORMAT[normalized_format],
            data_base64=base64.b64encode(image_bytes).decode("ascii"),
            natural_width=pix.width,
            natural_height=pix.height,
            render_scale=pix.width / displayed_width,
        )


def initialize_rasterizer(config: RasterizerConfig) -> FitzRasterizer:
    """Apply the process-wide rasterizer options and return a rasterizer.

    Call once at application startup.

    Args:
        config (RasterizerConfig): Rasterizer options.

    Raises:
        EngineIOError: If PyMuPDF is unavailable.

    Returns:
        FitzRasterizer: Configured rasterizer.
    """
    if fitz is None:
        raise EngineIOError(message="PyMuPDF is required for PDF rendering")

    fitz.TOOLS.set_aa_level(config.anti_aliasing)
    fitz.TOOLS.mupdf_display_errors(config.display_errors)
    logger.info(
        "Rasterizer initialized",
        extra={"anti_aliasing": config.anti_aliasing, "max_width": config.max_width},
    )
    return FitzRasterizer(config)
