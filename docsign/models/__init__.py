from docsign.models.document import (
    Document,
    SignatureImage,
    ViewportState,
)
from docsign.models.placement import (
    SignaturePlacement,
    PlacementSnapshot,
)
from docsign.models.settings import (
    AppSettings,
    SigningSettings,
    PlacementSettings,
    ViewerSettings,
    RasterExportSettings,
    PerformanceSettings,
)

__all__ = [
    "Document",
    "SignatureImage",
    "ViewportState",
    "SignaturePlacement",
    "PlacementSnapshot",
    "AppSettings",
    "SigningSettings",
    "PlacementSettings",
    "ViewerSettings",
    "RasterExportSettings",
    "PerformanceSettings",
]
