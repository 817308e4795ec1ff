"""
Pattern-based extraction of URLs, phone numbers and public IP addresses.

Each extractor returns a deduplicated list in first-seen order and skips
items it cannot parse instead of failing the whole message.
"""

import ipaddress
import re
from typing import Iterable, List, Optional

import phonenumbers
import tldextract
from linkify_it import LinkifyIt

from app.config.logging import get_logger

logger = get_logger(__name__)

IPV4_PATTERN = re.compile(
    r"\b(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
    r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\b"
)

# Ordered so that compressed forms with a tail ("2001:db8::1") win over the
# bare trailing-"::" form; ipaddress rejects anything with too many groups.
IPV6_PATTERN = re.compile(
    r"\b(?:[0-9a-fA-F]{1,4}:){7}[0-9a-fA-F]{1,4}\b"
    r"|\b(?:[0-9a-fA-F]{1,4}:){1,6}(?::[0-9a-fA-F]{1,4}){1,6}\b"
    r"|\b(?:[0-9a-fA-F]{1,4}:){1,7}:(?![0-9a-fA-F])"
    r"|(?<![0-9a-fA-F:])::(?:[0-9a-fA-F]{1,4}:){0,6}[0-9a-fA-F]{1,4}\b"
)

CARRIER_GRADE_NAT = ipaddress.ip_network("100.64.0.0/10")
IPV4_BROADCAST = ipaddress.ip_address("255.255.255.255")
UNIQUE_LOCAL = ipaddress.ip_network("fc00::/7")

PHONE_SEPARATORS = re.compile(r"[\n/]")


def dedupe(items: Iterable[str]) -> List[str]:
    """Remove duplicates, keeping the first occurrence order."""
    return list(dict.fromkeys(items))


def _top_level_domains() -> List[str]:
    """Single-label public suffixes from tldextract's bundled snapshot."""
    extractor = tldextract.TLDExtract(suffix_list_urls=(), cache_dir=None)
    return sorted({
        suffix for suffix in extractor.tlds
        if "." not in suffix and not suffix.startswith(("*", "!"))
    })


class UrlExtractor:
    """Finds scheme-qualified, www.-qualified and bare-domain links; ignores e-mail addresses."""

    def __init__(self, tlds: Optional[List[str]] = None):
        self.linkify = LinkifyIt()
        if tlds is None:
            try:
                tlds = _top_level_domains()
            except Exception as e:
                logger.warning("Could not load public suffix list, using linkify defaults", error=str(e))
        if tlds:
            self.linkify.tlds(tlds)
        self.linkify.set({"fuzzy_link": True, "fuzzy_email": False})
        logger.debug("URL extractor ready", tld_count=len(tlds or []))

    def extract(self, text: str) -> List[str]:
        matches = self.linkify.match(text) or []
        urls = []
        for match in matches:
            url = match.url
            if not url.startswith(("http://", "https://")):
                url = f"http://{url}"
            urls.append(url)
        return dedupe(urls)


def extract_phones(text: str, region: str = "BE") -> List[str]:
    """
    Find phone numbers and return them in E.164 format.

    The text is split on newlines and slashes first: lists like
    "31.31.20.72 / 31.31.20.73" otherwise stop matching after the first
    number.
    """
    phones = []
    for segment in PHONE_SEPARATORS.split(text):
        segment = segment.strip()
        if not segment:
            continue
        try:
            for match in phonenumbers.PhoneNumberMatcher(segment, region):
                phones.append(phonenumbers.format_number(match.number, phonenumbers.PhoneNumberFormat.E164))
        except Exception as e:
            logger.debug("Skipping unparseable phone segment", error=str(e))
    return dedupe(phones)


def is_public_ip(address) -> bool:
    """False for private, loopback, link-local, reserved and similar non-routable ranges."""
    if address.version == 4:
        return not (
            address.is_private
            or address.is_loopback
            or address.is_link_local
            or address.is_reserved
            or address == IPV4_BROADCAST
            or address in CARRIER_GRADE_NAT
        )
    return not (
        address.is_loopback
        or address.is_link_local
        or address in UNIQUE_LOCAL
        or address.is_multicast
        or address.is_reserved
    )


def extract_public_ips(text: str) -> List[str]:
    """Find IPv4 and IPv6 literals that are publicly routable."""
    ips = []

    for candidate in IPV4_PATTERN.findall(text):
        try:
            address = ipaddress.IPv4Address(candidate)
        except ValueError:
            continue
        if is_public_ip(address):
            ips.append(candidate)

    for candidate in IPV6_PATTERN.findall(text):
        try:
            address = ipaddress.IPv6Address(candidate)
        except ValueError:
            continue
        if is_public_ip(address):
            ips.append(str(address))

    return dedupe(ips)
