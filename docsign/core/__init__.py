"""Core package - rasterizing, render scheduling, coordinate transforms and the signing session."""

__all__ = [
    "Result",
    "Success",
    "Failure",
    "DecodeError",
    "RenderError",
    "ExportError",
    "ExportTimeoutError",
    "ValidationError",
    "PageRasterizer",
    "RenderTaskController",
    "SigningSession",
]

# Lazy imports to avoid circular dependencies
def __getattr__(name):
    if name in ("Result", "Success", "Failure", "DecodeError", "RenderError", "ExportError", "ExportTimeoutError", "ValidationError"):
        from docsign.core.error_types import Result, Success, Failure, DecodeError, RenderError, ExportError, ExportTimeoutError, ValidationError
        return locals()[name]
    elif name == "PageRasterizer":
        from docsign.core.page_rasterizer import PageRasterizer
        return PageRasterizer
    elif name == "RenderTaskController":
        from docsign.core.render_controller import RenderTaskController
        return RenderTaskController
    elif name == "SigningSession":
        from docsign.core.signing_session import SigningSession
        return SigningSession
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
