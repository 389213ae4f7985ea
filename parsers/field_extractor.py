from __future__ import annotations

import re
from typing import Optional


EMAIL_RE = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)
PHONE_RE = re.compile(r"(\+?\d[\d\-\s()]{7,}\d)")

MAX_NAME_WORDS = 4
NAME_SCAN_LINES = 6


def extract_email(text: str) -> Optional[str]:
    match = EMAIL_RE.search(text or "")
    return match.group(0) if match else None


def extract_phone(text: str) -> Optional[str]:
    match = PHONE_RE.search(text or "")
    if not match:
        return None
    return re.sub(r"\s+", " ", match.group(0)).strip()


def _looks_like_name(line: str) -> bool:
    return len(line.split()) <= MAX_NAME_WORDS


def extract_name(text: str, email: Optional[str] = None) -> Optional[str]:
    lines = [l.strip() for l in (text or "").splitlines() if l.strip()]

    # The line right above the email is usually the name header.
    if email:
        for idx, line in enumerate(lines):
            if email in line:
                if idx > 0 and _looks_like_name(lines[idx - 1]):
                    return lines[idx - 1]
                break

    for line in lines[:NAME_SCAN_LINES]:
        if not re.search(r"\d", line) and _looks_like_name(line):
            return line
    return None
