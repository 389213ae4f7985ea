from parsers import extract_email, extract_name, extract_phone


RESUME = """Jane Doe
jane.doe@example.com | +1 (555) 123-4567
Senior Backend Engineer with 8 years of experience
"""


def test_extract_email():
    assert extract_email(RESUME) == "jane.doe@example.com"
    assert extract_email("Contact: Jane.Doe@Example.COM") == "Jane.Doe@Example.COM"
    assert extract_email("no contact details here") is None


def test_extract_phone():
    assert extract_phone(RESUME) == "+1 (555) 123-4567"
    assert extract_phone("call 555  123  4567 today") == "555 123 4567"
    assert extract_phone("only 12345 digits") is None


def test_name_taken_from_line_above_email():
    assert extract_name(RESUME, "jane.doe@example.com") == "Jane Doe"


def test_name_falls_back_to_first_short_line_without_digits():
    text = "RESUME 2024\nJohn Smith\nPython developer"
    assert extract_name(text, None) == "John Smith"


def test_name_missing():
    text = "Experienced engineer building distributed systems at scale\n2019 - 2024 Acme Corp"
    assert extract_name(text, None) is None
    assert extract_name("", None) is None
