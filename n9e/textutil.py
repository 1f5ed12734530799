"""Checks applied to user-supplied names and contact details."""

from __future__ import annotations

import re

_DANGEROUS_PARTS = ("<", ">", "&", "'", '"', "file://", "../")

_PHONE_RE = re.compile(r"^(\+\d{2}-)?(\d{2,3}-)?1[3-9]\d{9}$")
_MAIL_RE = re.compile(r"^[A-Za-z0-9_.+-]+@[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)+$")


def dangerous(s: str) -> bool:
    """True if the text holds markup or path characters that are not allowed."""
    return any(part in s for part in _DANGEROUS_PARTS)


def is_phone(s: str) -> bool:
    return bool(_PHONE_RE.match(s))


def is_mail(s: str) -> bool:
    return bool(_MAIL_RE.match(s))