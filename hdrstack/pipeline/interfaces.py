from typing import Protocol, Optional, Any, runtime_checkable
from dataclasses import dataclass, field
from hdrstack.domain.types import CaptureSettings, FrameGeometry, FrameMetadata, PackedBuffer, RawFrame
from hdrstack.kernel.curve.pwl import Pwl
from hdrstack.kernel.image.wide import WideImage


@dataclass
class MergeContext:
    """
    State passed between the merge steps of one capture.
    """

    geometry: FrameGeometry

    # Low-pass image produced by the diffusion step, consumed by tonemapping
    lowpass: Optional[WideImage] = None
    tonemap: Optional[Pwl] = None
    # Metrics gathered by the steps (e.g. histogram quantiles)
    metrics: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class IProcessor(Protocol):
    """
    Interface for any merge step. Steps may mutate the image in place.
    """

    def process(self, image: WideImage, context: MergeContext) -> WideImage: ...


class ICaptureControl(Protocol):
    """
    Camera collaborator: switches to still capture with the metered settings.
    """

    def reconfigure(self, settings: CaptureSettings) -> FrameGeometry: ...

    def stop(self) -> None: ...


class IPreviewSink(Protocol):
    """
    Display collaborator. Frames are not retained after the call.
    """

    def show(self, frame: RawFrame) -> None: ...


class IImageEncoder(Protocol):
    """
    Encoding collaborator receiving finished 8-bit YUV420 buffers.
    """

    def save(self, buffer: PackedBuffer, geometry: FrameGeometry, metadata: FrameMetadata, name: str) -> None: ...
