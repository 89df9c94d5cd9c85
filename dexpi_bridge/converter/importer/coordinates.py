"""
Coordinate transform between DEXPI drawing space and canvas space.

DEXPI drawings use millimetre coordinates with the y-axis pointing up; the
canvas uses pixel-like units with the y-axis pointing down. The transform
scales both axes and flips y against an offset derived from the largest y
coordinate in the model.
"""

from dataclasses import dataclass
from typing import Optional, Tuple
import logging

from dexpi_bridge.converter.models.document import DexpiDocument, DexpiFormat, ProcessModel
from dexpi_bridge.services.config_service import ConversionParameters

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CoordinateTransform:
    """Scale plus optional y-axis inversion."""
    scale: float = 4.0
    offset: float = 0.0
    invert_y: bool = True

    def forward(self, x: float, y: float) -> Tuple[float, float]:
        """DEXPI -> canvas."""
        canvas_x = x * self.scale
        canvas_y = self.offset - y * self.scale if self.invert_y else y * self.scale
        return canvas_x, canvas_y

    def inverse(self, x: float, y: float) -> Tuple[float, float]:
        """Canvas -> DEXPI."""
        dexpi_x = x / self.scale
        dexpi_y = (self.offset - y) / self.scale if self.invert_y else y / self.scale
        return dexpi_x, dexpi_y

    def length(self, value: Optional[float]) -> Optional[float]:
        """Scale a width or height."""
        return None if value is None else value * self.scale

    @classmethod
    def identity(cls) -> "CoordinateTransform":
        return cls(scale=1.0, offset=0.0, invert_y=False)

    @classmethod
    def for_model(cls, model: ProcessModel, conversion: Optional[ConversionParameters] = None) -> "CoordinateTransform":
        """
        Build the transform for a model.

        Args:
            model: Process model whose step and external-port layouts set the offset
            conversion: Scale, padding and inversion settings

        Returns:
            Transform with offset = (max_y + padding) * scale
        """
        conversion = conversion or ConversionParameters()
        max_y = 0.0
        for step in model.steps:
            if step.layout is not None:
                max_y = max(max_y, step.layout.y)
        for port in model.external_ports:
            if port.layout is not None:
                max_y = max(max_y, port.layout.y)

        offset = (max_y + conversion.y_axis_padding) * conversion.position_scale_factor
        return cls(
            scale=conversion.position_scale_factor,
            offset=offset if conversion.invert_y_axis else 0.0,
            invert_y=conversion.invert_y_axis,
        )


def needs_transform(document: DexpiDocument, conversion: Optional[ConversionParameters] = None) -> bool:
    """
    Whether a document's coordinates are in DEXPI drawing space.

    Proteus documents always are. DEXPI 2.0 documents written by this
    application already carry canvas coordinates; those from other
    producers are transformed unless ``transform_foreign_documents`` is off.
    """
    conversion = conversion or ConversionParameters()
    if document.source_format == DexpiFormat.PROTEUS:
        return True
    if not conversion.transform_foreign_documents:
        return False
    metadata = document.process_model.metadata
    source = metadata.application_source if metadata is not None else None
    return source != conversion.application_source


def transform_for_document(
    document: DexpiDocument,
    conversion: Optional[ConversionParameters] = None
) -> CoordinateTransform:
    if needs_transform(document, conversion):
        transform = CoordinateTransform.for_model(document.process_model, conversion)
        logger.debug(f"Applying coordinate transform: scale={transform.scale}, offset={transform.offset}")
        return transform
    return CoordinateTransform.identity()
