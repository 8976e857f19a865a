"""Input validation utilities for the PCM API."""
import re
from typing import Any, Optional, Tuple

from pcm.models import WorkOrderStatus

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
RECORD_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')
MAX_SEARCH_LENGTH = 100
ALLOWED_STATUSES = {s.value for s in WorkOrderStatus}


def validate_email(email: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate an email address.
    Returns (is_valid, error_message).
    """
    if not email:
        return False, "Email is required"
    if not isinstance(email, str):
        return False, "Email must be a string"
    if len(email) > 254:
        return False, "Email is too long"
    if not EMAIL_PATTERN.match(email.strip()):
        return False, "Email format is invalid"
    return True, None


def validate_record_id(record_id: Any) -> Tuple[bool, Optional[str]]:
    if not record_id:
        return False, "Record ID is required"
    if not isinstance(record_id, str):
        return False, "Record ID must be a string"
    if len(record_id) > 64:
        return False, "Record ID is too long"
    if not RECORD_ID_PATTERN.match(record_id):
        return False, "Record ID contains invalid characters"
    return True, None


def validate_status_filter(status: Optional[str]) -> Tuple[bool, Optional[str]]:
    if status is None or status == '':
        return True, None
    if status not in ALLOWED_STATUSES:
        return False, f"Status must be one of: {', '.join(sorted(ALLOWED_STATUSES))}"
    return True, None


def validate_search_term(term: Optional[str]) -> Tuple[bool, Optional[str]]:
    if term is None:
        return True, None
    if len(term) > MAX_SEARCH_LENGTH:
        return False, f"Search term exceeds maximum length of {MAX_SEARCH_LENGTH} characters"
    return True, None


def validate_tax_id(tax_id: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate a technician tax id (CPF-style: 11 digits, punctuation allowed).
    Empty values are accepted.
    """
    if tax_id is None or tax_id == '':
        return True, None
    if not isinstance(tax_id, str):
        return False, "Technician tax id must be a string"
    digits = re.sub(r'[.\-\s]', '', tax_id)
    if not digits.isdigit() or len(digits) != 11:
        return False, "Technician tax id must contain 11 digits"
    return True, None


def validate_login_request(data: Any) -> Tuple[bool, Optional[str]]:
    if not data or not isinstance(data, dict):
        return False, "Request body is required"
    is_valid, error = validate_email(data.get('email'))
    if not is_valid:
        return False, error
    if not data.get('password') or not isinstance(data.get('password'), str):
        return False, "Password is required"
    return True, None
