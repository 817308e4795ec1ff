"""Known URL shortener domains and hostname matching."""

from typing import Optional

SHORTENER_DOMAINS = frozenset({
    "1url.com", "2.gp", "2big.at", "2tu.us", "3.ly", "4sq.com", "7.ly",
    "a.co", "adf.ly", "aka.ms", "amzn.to", "apple.co", "bc.vc", "bit.do",
    "bit.ly", "bitly.com", "bitly.is", "bl.ink", "buff.ly", "budurl.com",
    "chilp.it", "clck.ru", "cli.gs", "cli.re", "cutt.ly", "cutt.us",
    "db.tt", "dlvr.it", "do.co", "dub.sh", "dwz.cn", "fb.me", "flip.it",
    "fur.ly", "g.co", "gg.gg", "git.io", "go.ly", "goo.gl", "goo.su",
    "gowal.la", "hyperurl.co", "ift.tt", "is.gd", "j.mp", "kutt.it",
    "lc.chat", "linkd.in", "lnk.bio", "lnkd.in", "mcaf.ee", "me2.do",
    "msft.it", "n9.cl", "ow.ly", "page.link", "po.st", "q.gs", "qr.ae",
    "qrco.de", "rb.gy", "rebrand.ly", "s.id", "shor.by", "short.io",
    "short.link", "shorturl.at", "shorte.st", "smarturl.it", "snip.ly",
    "snipurl.com", "soo.gd", "su.pr", "t.co", "t.ly", "t.me", "tiny.cc",
    "tiny.one", "tinyurl.com", "tny.im", "tr.im", "trib.al", "u.nu",
    "u.to", "ur1.ca", "url.ie", "urlz.fr", "v.gd", "vk.cc", "vzturl.com",
    "waa.ai", "wp.me", "x.co", "y2u.be", "yourls.org", "youtu.be",
    "zpr.io", "zws.im",
})


def _normalize(hostname: str) -> str:
    return hostname.lower().rstrip(".")


def shortener_domain_for(hostname: str) -> Optional[str]:
    """Return the shortener domain hostname belongs to (exact or subdomain match), else None."""
    if not hostname:
        return None
    host = _normalize(hostname)
    if host in SHORTENER_DOMAINS:
        return host
    parts = host.split(".")
    for i in range(1, len(parts) - 1):
        candidate = ".".join(parts[i:])
        if candidate in SHORTENER_DOMAINS:
            return candidate
    return None


def is_shortener(hostname: str) -> bool:
    return shortener_domain_for(hostname) is not None
