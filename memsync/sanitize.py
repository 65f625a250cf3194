"""Text and email sanitation for outbound membership payloads.

Every function here is total: it accepts any value (including ``None``) and
returns a string, never raising. Guarantees:

- ``strip_control_characters``: no Unicode control characters remain; runs of
  tabs/newlines/spaces collapse to a single space; result is trimmed.
- ``strip_tags``: no markup remains, including unterminated tags;
  ``<script>``/``<style>`` blocks are dropped together with their content and
  leftover ``<``, ``>`` and ``&`` come back HTML-escaped.
- ``escape_for_transport``: percent-encoded octets (``%4A``) are removed.
- ``normalize_email``: returns ``""`` unless the address has a plausible
  ``local@domain.tld`` shape.
"""

import re
import unicodedata

import nh3

_OCTET_RE = re.compile(r"%[a-fA-F0-9]{2}")
_WHITESPACE_RE = re.compile(r"[\r\n\t ]+")

_EMAIL_LOCAL_INVALID_RE = re.compile(r"[^a-zA-Z0-9!#$%&'*+/=?^_`{|}~.-]")
_EMAIL_LABEL_INVALID_RE = re.compile(r"[^a-z0-9-]", re.IGNORECASE)


def _as_text(value) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def strip_control_characters(value) -> str:
    text = _WHITESPACE_RE.sub(" ", _as_text(value))
    text = "".join(ch for ch in text if unicodedata.category(ch) != "Cc")
    return text.strip()


def strip_tags(value) -> str:
    return nh3.clean(_as_text(value), tags=set())


def escape_for_transport(value) -> str:
    text = _as_text(value)
    # removing one octet can expose another ("%%4141")
    while True:
        stripped = _OCTET_RE.sub("", text)
        if stripped == text:
            return text
        text = stripped


def sanitize_text_field(value) -> str:
    """Clean a free-text field for the import API.

    Markup goes through an HTML parser rather than a pattern, so a
    half-open tag such as ``"Jane<img src=x onerror=..."`` is removed while
    ``"a < b"`` survives as ``"a &lt; b"``.
    """
    text = strip_control_characters(value)
    text = strip_tags(text)
    text = escape_for_transport(text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_email(value) -> str:
    email = strip_control_characters(value)
    if len(email) < 6:
        return ""
    if email.find("@", 1) == -1:
        return ""

    local, domain = email.split("@", 1)
    local = _EMAIL_LOCAL_INVALID_RE.sub("", local)
    if not local:
        return ""

    if ".." in domain:
        return ""
    domain = domain.strip(" \t\n\r\0\x0b.")
    if not domain:
        return ""

    labels = []
    for label in domain.split("."):
        label = label.strip(" \t\n\r\0\x0b-")
        label = _EMAIL_LABEL_INVALID_RE.sub("", label)
        if label:
            labels.append(label)
    if len(labels) < 2:
        return ""

    return f"{local}@{'.'.join(labels)}"
