"""Local, network-free format checks used to build fallback payloads.

These only judge shape. Anything that needs the network (MX records,
reputation, carrier lookups) is left to the remote service.
"""

import re
from typing import Any, Mapping, Optional
from urllib.parse import urlparse

_URL_RE = re.compile(
    r"^https?://[-\w.]+(?::[0-9]+)?(?:/[\w/.\-]*(?:\?[\w&=%.\-]*)?(?:#[\w.\-]*)?)?$"
)
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_DOMAIN_LABEL_RE = re.compile(r"^[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?$")
_CARD_RE = re.compile(r"^\d{13,19}$")
_IPV4_RE = re.compile(
    r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
    r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)
_IPV6_RE = re.compile(r"^(?:[0-9a-fA-F]{1,4}:){7}[0-9a-fA-F]{1,4}$")
_PHONE_RE = re.compile(r"^\+?[1-9]\d{1,14}$")
_PHONE_STRIP_RE = re.compile(r"[^\d+]")
_BITCOIN_RE = re.compile(r"^[13][a-km-zA-HJ-NP-Z1-9]{25,34}$")
_ETHEREUM_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_IBAN_RE = re.compile(r"^[A-Z]{2}\d{2}[A-Z0-9]{11,30}$")
_WHITESPACE_RE = re.compile(r"\s")


def _field(value: Any, key: str) -> str:
    """Returns ``value`` if it is a string, else ``value[key]`` as a string."""
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        inner = value.get(key)
        if inner is None:
            return ""
        return inner if isinstance(inner, str) else str(inner)
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return ""


def validate_url(url: Optional[str]) -> bool:
    if not url or not isinstance(url, str):
        return False
    return bool(_URL_RE.match(url))


def extract_domain(url: Optional[str]) -> str:
    """Hostname of ``url`` or an empty string if it does not parse."""
    if not url or not isinstance(url, str):
        return ""
    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""


def validate_email(email: Optional[str]) -> bool:
    if not email or not isinstance(email, str):
        return False
    return bool(_EMAIL_RE.match(email))


def validate_domain(domain: Optional[str]) -> bool:
    """Labels of 1-63 alphanumerics/hyphens, no edge hyphens, at least two labels."""
    if not domain or not isinstance(domain, str):
        return False
    labels = domain.split(".")
    if len(labels) < 2:
        return False
    return all(_DOMAIN_LABEL_RE.match(label) for label in labels)


def luhn_checksum_valid(digits: str) -> bool:
    """Mod-10 check: double every second digit from the right, subtract 9 above 9."""
    total = 0
    for index, char in enumerate(reversed(digits)):
        digit = int(char)
        if index % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def card_number(credit_card: Any) -> str:
    """The PAN of a card given as a string or a mapping with ``pan``."""
    return _field(credit_card, "pan")


def validate_credit_card(credit_card: Any) -> bool:
    number = _WHITESPACE_RE.sub("", card_number(credit_card))
    if not _CARD_RE.match(number):
        return False
    return luhn_checksum_valid(number)


def validate_ip(ip: Optional[str]) -> bool:
    if not ip or not isinstance(ip, str):
        return False
    return bool(_IPV4_RE.match(ip) or _IPV6_RE.match(ip))


def ip_version(ip: Optional[str]) -> Optional[str]:
    if not ip or not isinstance(ip, str):
        return None
    if _IPV4_RE.match(ip):
        return "IPv4"
    if _IPV6_RE.match(ip):
        return "IPv6"
    return None


def phone_number(phone: Any) -> str:
    """The number of a phone given as a string or a mapping with ``phone``."""
    return _field(phone, "phone")


def validate_phone(phone: Any) -> bool:
    number = phone_number(phone)
    if not number:
        return False
    return bool(_PHONE_RE.match(_PHONE_STRIP_RE.sub("", number)))


def validate_wallet(wallet: Optional[str]) -> bool:
    """Bitcoin legacy (P2PKH/P2SH) or Ethereum address shape."""
    if not wallet or not isinstance(wallet, str):
        return False
    return bool(_BITCOIN_RE.match(wallet) or _ETHEREUM_RE.match(wallet))


def wallet_type(wallet: Optional[str]) -> str:
    if not wallet or not isinstance(wallet, str):
        return "unknown"
    if _BITCOIN_RE.match(wallet):
        return "bitcoin"
    if _ETHEREUM_RE.match(wallet):
        return "ethereum"
    return "unknown"


def validate_iban(iban: Optional[str]) -> bool:
    if not iban or not isinstance(iban, str):
        return False
    return bool(_IBAN_RE.match(_WHITESPACE_RE.sub("", iban).upper()))
