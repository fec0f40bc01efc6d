"""Offline fallback payloads for when the remote service is unreachable.

Each synthesized payload has the shape of the real response. Format checks run
locally (see ``validators``); every field that needs the network (fraud,
geolocation, reputation) takes a neutral default. The result is structurally
plausible but non-authoritative.
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Union

from validkit.domain.models.operations import Operation
from validkit.infrastructure.resilience import validators

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "API unavailable - using fallback response"

_SANITIZER_FORMATS = (
    "ascii", "bitcoinAddress", "cLikeIdentifier", "coordinates", "crediCard", "date",
    "discordUsername", "doi", "domain", "e164Phone", "email", "emoji", "hanUnification",
    "hashtag", "hyphenWordBreak", "ipv6", "ip", "jiraTicket", "macAddress", "name",
    "number", "panFromGstin", "password", "port", "tel", "text", "semver", "ssn",
    "uuid", "url", "urlSlug", "username",
)
_SANITIZER_INCLUDES = (
    "spaces", "hasSql", "hasNoSql", "letters", "uppercase", "lowercase", "symbols", "digits",
)

Synthesizer = Callable[[Mapping[str, Any]], Dict[str, Any]]


def _get(data: Optional[Mapping[str, Any]], key: str, default: Any = "") -> Any:
    if not isinstance(data, Mapping):
        return default
    value = data.get(key)
    return default if value is None else value


def _reputation_plugins() -> Dict[str, Any]:
    return {
        "blocklist": False,
        "compromiseDetector": False,
        "mxRecords": [],
        "nsfw": False,
        "reputation": "unknown",
        "riskScore": 0,
        "torNetwork": False,
        "typosquatting": 0,
        "urlShortener": False,
    }


def _risk_plugins() -> Dict[str, Any]:
    return {"blocklist": False, "riskScore": 0}


def verdict(field_name: str, analysis: Mapping[str, Any]) -> Dict[str, Any]:
    """Wraps a single-field analysis as ``{field, allow, reasons, response}``.

    Used for both live and synthesized email, IP and phone checks so the two
    paths return the same shape. Only invalid input is denied.
    """
    valid = bool(analysis.get("valid"))
    return {
        field_name: analysis.get(field_name, ""),
        "allow": valid,
        "reasons": [] if valid else ["INVALID"],
        "response": analysis,
    }


# --- Per-field analyses, shared by the single and combined checks ---

def email_analysis(email: Any) -> Dict[str, Any]:
    address = email if isinstance(email, str) else ""
    return {
        "valid": validators.validate_email(address),
        "fraud": False,
        "proxiedEmail": False,
        "freeSubdomain": False,
        "corporate": False,
        "email": address,
        "realUser": "",
        "didYouMean": None,
        "noReply": False,
        "customTLD": False,
        "domain": "",
        "roleAccount": False,
        "plugins": _reputation_plugins(),
    }


def ip_analysis(ip: Any) -> Dict[str, Any]:
    address = ip if isinstance(ip, str) else ""
    version = validators.ip_version(address)
    return {
        "valid": version is not None,
        "type": version or "Invalid",
        "class": "Unknown",
        "fraud": False,
        "ip": address,
        "continent": "",
        "continentCode": "",
        "country": "",
        "countryCode": "",
        "region": "",
        "regionName": "",
        "city": "",
        "district": "",
        "zipCode": "",
        "lat": 0,
        "lon": 0,
        "timezone": "",
        "offset": 0,
        "currency": "",
        "isp": "",
        "org": "",
        "as": "",
        "asname": "",
        "mobile": False,
        "proxy": False,
        "hosting": False,
        "plugins": _risk_plugins(),
    }


def phone_analysis(phone: Any) -> Dict[str, Any]:
    return {
        "valid": validators.validate_phone(phone),
        "fraud": False,
        "phone": validators.phone_number(phone),
        "prefix": "",
        "number": "",
        "lineType": "Unknown",
        "carrierInfo": {
            "carrierName": "",
            "accuracy": 0,
            "carrierCountry": "",
            "carrierCountryCode": "",
        },
        "country": "",
        "countryCode": "",
        "plugins": _risk_plugins(),
    }


def _url_analysis(url: Any) -> Dict[str, Any]:
    address = url if isinstance(url, str) else ""
    return {
        "valid": validators.validate_url(address),
        "fraud": False,
        "freeSubdomain": False,
        "customTLD": False,
        "url": address,
        "domain": validators.extract_domain(address),
        "plugins": _reputation_plugins(),
    }


def _domain_analysis(domain: Any) -> Dict[str, Any]:
    name = domain if isinstance(domain, str) else ""
    return {
        "valid": validators.validate_domain(name),
        "fraud": False,
        "freeSubdomain": False,
        "customTLD": False,
        "domain": name,
        "plugins": _reputation_plugins(),
    }


def _credit_card_analysis(credit_card: Any) -> Dict[str, Any]:
    return {
        "valid": validators.validate_credit_card(credit_card),
        "fraud": False,
        "test": False,
        "type": "unknown",
        "creditCard": validators.card_number(credit_card),
        "plugins": _risk_plugins(),
    }


def _wallet_analysis(wallet: Any) -> Dict[str, Any]:
    address = wallet if isinstance(wallet, str) else ""
    return {
        "valid": validators.validate_wallet(address),
        "fraud": False,
        "wallet": address,
        "type": validators.wallet_type(address),
        "plugins": {**_risk_plugins(), "torNetwork": False},
    }


def _user_agent_analysis(user_agent: Any) -> Dict[str, Any]:
    # user agents cannot be judged offline
    return {
        "valid": False,
        "fraud": False,
        "userAgent": user_agent if isinstance(user_agent, str) else "",
        "bot": False,
        "device": {"type": "unknown", "brand": "unknown"},
        "plugins": _risk_plugins(),
    }


def _iban_analysis(iban: Any) -> Dict[str, Any]:
    value = iban if isinstance(iban, str) else ""
    return {
        "valid": validators.validate_iban(value),
        "fraud": False,
        "iban": value,
        "plugins": _risk_plugins(),
    }


# --- Operation synthesizers ---

def _data_verification(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "url": _url_analysis(_get(data, "url")),
        "email": email_analysis(_get(data, "email")),
        "phone": phone_analysis(_get(data, "phone")),
        "domain": _domain_analysis(_get(data, "domain")),
        "creditCard": _credit_card_analysis(_get(data, "creditCard")),
        "ip": ip_analysis(_get(data, "ip")),
        "wallet": _wallet_analysis(_get(data, "wallet")),
        "userAgent": _user_agent_analysis(_get(data, "userAgent")),
        "iban": _iban_analysis(_get(data, "iban")),
    }


def _email_check(data: Mapping[str, Any]) -> Dict[str, Any]:
    return verdict("email", email_analysis(_get(data, "email")))


def _ip_check(data: Mapping[str, Any]) -> Dict[str, Any]:
    return verdict("ip", ip_analysis(_get(data, "ip")))


def _phone_check(data: Mapping[str, Any]) -> Dict[str, Any]:
    return verdict("phone", phone_analysis(_get(data, "phone")))


def _waf_check(data: Mapping[str, Any]) -> Dict[str, Any]:
    # unverifiable requests are denied
    headers = _get(data, "headers", {})
    return {
        "method": _get(data, "method", "GET"),
        "url": _get(data, "url"),
        "headers": dict(headers) if isinstance(headers, Mapping) else {},
        "body": _get(data, "body", None),
        "allow": False,
        "reasons": ["FRAUD"],
        "protected": True,
    }


def _send_email(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {"status": False, "error": UNAVAILABLE_MESSAGE}


def _random_number(data: Mapping[str, Any]) -> Dict[str, Any]:
    quantity = _get(data, "quantity", 1)
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
        quantity = 1
    return {
        "values": [{"integer": 0, "float": 0.0} for _ in range(quantity)],
        "executionTime": 0,
    }


def _text_extraction(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {"data": _get(data, "data"), "extracted": {}, "error": UNAVAILABLE_MESSAGE}


def _prayer_times(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {"error": UNAVAILABLE_MESSAGE}


def _input_sanitize(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "input": _get(data, "input"),
        "formats": {name: False for name in _SANITIZER_FORMATS},
        "includes": {name: False for name in _SANITIZER_INCLUDES},
    }


def _password_check(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "valid": False,
        "password": _get(data, "password"),
        "details": [{"validation": "length", "message": UNAVAILABLE_MESSAGE}],
    }


_SYNTHESIZERS: Dict[Operation, Synthesizer] = {
    Operation.DATA_VERIFICATION: _data_verification,
    Operation.DATA_VERIFICATION_RAW: _data_verification,
    Operation.EMAIL_CHECK: _email_check,
    Operation.IP_CHECK: _ip_check,
    Operation.PHONE_CHECK: _phone_check,
    Operation.WAF_CHECK: _waf_check,
    Operation.SEND_EMAIL: _send_email,
    Operation.RANDOM_NUMBER: _random_number,
    Operation.TEXT_EXTRACTION: _text_extraction,
    Operation.PRAYER_TIMES: _prayer_times,
    Operation.INPUT_SANITIZE: _input_sanitize,
    Operation.PASSWORD_CHECK: _password_check,
}

_missing = set(Operation) - set(_SYNTHESIZERS)
if _missing:
    raise RuntimeError(f"No fallback synthesizer registered for: {sorted(op.name for op in _missing)}")


class FallbackSynthesizer:
    """Builds degraded-mode responses for every known operation."""

    def synthesize(
        self,
        operation: Union[Operation, str],
        input_data: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Produces an offline payload shaped like the operation's real response.

        Args:
            operation: An ``Operation`` or its string tag.
            input_data: The original request input.

        Returns:
            A new dict; callers may mutate it freely.

        Raises:
            UnknownOperationError: If ``operation`` is not a known tag.
        """
        op = Operation.parse(operation)
        logger.debug(f"Synthesizing fallback payload for {op.value}")
        return _SYNTHESIZERS[op](input_data or {})
