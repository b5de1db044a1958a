"""DocSign - place a hand-drawn signature on a document and export the signed copy."""

__version__ = "1.0.0"
