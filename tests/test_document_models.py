"""
tests/test_document_models.py

Document, SignatureImage and ViewportState value objects.
"""

from __future__ import annotations

import base64
import unittest

from tests.support import ensure_app, make_signature_png

from docsign.core.error_types import ValidationError
from docsign.models.document import Document, SignatureImage, ViewportState


class TestDocument(unittest.TestCase):
    def test_from_upload_normalizes_media_type(self) -> None:
        document = Document.from_upload(b"%PDF-1.7", " Application/PDF ", "contract.pdf")
        self.assertEqual(document.media_type, "application/pdf")
        self.assertTrue(document.is_paginated)
        self.assertEqual(document.page_count, 1)

    def test_flat_documents(self) -> None:
        document = Document.from_upload(b"a,b\n1,2\n", "text/csv", "table.csv")
        self.assertFalse(document.is_paginated)
        self.assertEqual(document.friendly_type, "CSV File")
        self.assertEqual(document.suggested_output_name(), "signed-table.png")

    def test_friendly_type_fallbacks(self) -> None:
        word = Document.from_upload(b"x", "application/vnd.ms-word.document.macroenabled.12", "a.docm")
        other = Document.from_upload(b"x", "image/png", "scan.png")
        self.assertEqual(word.friendly_type, "Word Document")
        self.assertEqual(other.friendly_type, "Document")

    def test_output_names(self) -> None:
        pdf = Document.from_upload(b"x", "application/pdf", "report.final.pdf")
        self.assertEqual(pdf.suggested_output_name(), "signed-report.final.pdf")
        no_extension = Document.from_upload(b"x", "text/plain", "README")
        self.assertEqual(no_extension.suggested_output_name(), "signed-README.png")

    def test_size_and_page_count(self) -> None:
        document = Document.from_upload(b"x" * 2048, "application/pdf", "a.pdf")
        self.assertEqual(document.size_kb, 2.0)
        self.assertEqual(document.with_page_count(4).page_count, 4)
        self.assertEqual(document.with_page_count(4).to_dict()["page_count"], 4)
        self.assertEqual(document.to_dict()["size_bytes"], 2048)
        self.assertEqual(document.with_page_count(0).page_count, 1)
        self.assertEqual(document.page_count, 1)


class TestSignatureImage(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        ensure_app()

    def test_decodes_native_size(self) -> None:
        result = SignatureImage.from_png_bytes(make_signature_png(300, 100))
        self.assertTrue(result.is_success())
        signature = result.unwrap()
        self.assertEqual((signature.width, signature.height), (300, 100))
        self.assertAlmostEqual(signature.aspect_ratio, 1 / 3)

    def test_rejects_empty_and_garbage(self) -> None:
        for data in (b"", b"not an image"):
            result = SignatureImage.from_png_bytes(data)
            self.assertTrue(result.is_failure())
            self.assertIsInstance(result.get_error(), ValidationError)

    def test_data_url(self) -> None:
        payload = base64.b64encode(make_signature_png(40, 20)).decode("ascii")
        result = SignatureImage.from_data_url(f"data:image/png;base64,{payload}")
        self.assertTrue(result.is_success())
        self.assertEqual(result.unwrap().width, 40)

    def test_zero_size_signature_is_rejected(self) -> None:
        for width, height in ((0, 10), (10, 0), (-1, 5)):
            result = SignatureImage(data=b"png", width=width, height=height).validate()
            self.assertTrue(result.is_failure())
            self.assertIsInstance(result.get_error(), ValidationError)
        self.assertTrue(SignatureImage(data=b"png", width=4, height=2).validate().is_success())

    def test_data_url_must_be_base64_image(self) -> None:
        self.assertTrue(SignatureImage.from_data_url("data:text/plain;base64,aGk=").is_failure())
        self.assertTrue(SignatureImage.from_data_url("data:image/png;base64,***").is_failure())
        self.assertTrue(SignatureImage.from_data_url("").is_failure())


class TestViewportState(unittest.TestCase):
    def test_to_dict(self) -> None:
        viewport = ViewportState(page_number=3, page_count=3, zoom_level=2.0, width_px=1224, height_px=1584)
        self.assertEqual(viewport.to_dict(), {
            "page_number": 3,
            "page_count": 3,
            "zoom_level": 2.0,
            "width_px": 1224,
            "height_px": 1584,
        })


if __name__ == "__main__":
    unittest.main()
