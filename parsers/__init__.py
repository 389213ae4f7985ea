from .resume_parser import extract_text, read_resume, SUPPORTED_FORMATS
from .field_extractor import extract_email, extract_phone, extract_name

__all__ = [
    "extract_text",
    "read_resume",
    "SUPPORTED_FORMATS",
    "extract_email",
    "extract_phone",
    "extract_name",
]
