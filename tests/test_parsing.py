import unittest

import support  # noqa: F401

from app.parsing.parse import extract_document, extract_text


class ParsingFacadeTests(unittest.TestCase):
    def test_parse_txt_keeps_text_and_size(self):
        content = "Line one\n- Bullet item\nLine three"
        parsed = extract_document("resume.txt", content.encode("utf-8"))
        self.assertEqual(parsed.text, content)
        self.assertEqual(parsed.file_name, "resume.txt")
        self.assertEqual(parsed.file_size, len(content))
        self.assertEqual(parsed.parsing_warnings, [])

    def test_extension_is_case_insensitive(self):
        self.assertEqual(extract_text("RESUME.TXT", b"  Priya Sharma  "), "Priya Sharma")

    def test_unsupported_extension(self):
        with self.assertRaises(ValueError) as ctx:
            extract_document("resume.rtf", b"{\\rtf1}")
        self.assertIn("Unsupported file type: rtf", str(ctx.exception))

    def test_blank_text_reports_warning(self):
        parsed = extract_document("blank.txt", b"   ")
        self.assertEqual(parsed.parsing_warnings, ["No extractable text found in TXT."])
        with self.assertRaises(ValueError):
            extract_text("blank.txt", b"   ")

    def test_garbage_pdf_is_not_fatal(self):
        parsed = extract_document("broken.pdf", b"not really a pdf")
        self.assertEqual(parsed.text, "")
        self.assertTrue(parsed.parsing_warnings)

    def test_legacy_doc_explains_itself(self):
        with self.assertRaises(ValueError) as ctx:
            extract_text("resume.doc", b"\xd0\xcf\x11\xe0 legacy word file")
        self.assertIn("Legacy .doc files cannot be read", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
