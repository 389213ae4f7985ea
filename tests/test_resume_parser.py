import io

import pytest

from parsers import extract_text, read_resume
from parsers.resume_parser import file_format
from utils.errors import ExtractionFailure, UnsupportedFormat

from conftest import make_docx


def test_file_format():
    assert file_format("cv.PDF") == "pdf"
    assert file_format("my.resume.docx") == "docx"
    assert file_format("README") == ""


def test_docx_text():
    buf = make_docx("Jane Doe", "jane.doe@example.com")
    text = extract_text(buf, "Resume.DOCX")
    assert "Jane Doe" in text
    assert "jane.doe@example.com" in text


def test_read_resume_from_path(tmp_path):
    path = tmp_path / "cv.docx"
    path.write_bytes(make_docx("John Smith").getvalue())
    assert read_resume(str(path)) == "John Smith"


@pytest.mark.parametrize("filename", ["resume.txt", "resume.doc", "resume"])
def test_unsupported_format(filename):
    with pytest.raises(UnsupportedFormat):
        extract_text(io.BytesIO(b"plain text"), filename)


def test_corrupt_pdf():
    with pytest.raises(ExtractionFailure) as exc:
        extract_text(io.BytesIO(b"this is not a pdf"), "resume.pdf")
    assert not isinstance(exc.value, UnsupportedFormat)


def test_corrupt_docx():
    with pytest.raises(ExtractionFailure):
        extract_text(io.BytesIO(b"not a zip archive"), "resume.docx")
