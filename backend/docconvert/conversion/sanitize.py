"""
Allow-list HTML sanitizer (BeautifulSoup).

Mail bodies are attacker-controlled markup that ends up inside a real
browser. Everything that is not explicitly allowed is removed before the
HTML reaches the render engine:

  • tags outside the allow-list are unwrapped (their text survives)
  • script, style and other non-text containers are dropped with content
  • attributes outside the per-tag allow-list are dropped (on* handlers included)
  • URL attributes must be relative or use an allowed scheme
  • inline style keeps only vetted color / text-align / font-size values
  • comments are dropped
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Comment

# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------

DEFAULT_ALLOWED_TAGS: frozenset[str] = frozenset({
    "address", "article", "aside", "footer", "header",
    "h1", "h2", "h3", "h4", "h5", "h6", "hgroup", "main", "nav", "section",
    "blockquote", "dd", "div", "dl", "dt", "figcaption", "figure", "hr",
    "li", "ol", "p", "pre", "ul",
    "a", "abbr", "b", "bdi", "bdo", "br", "cite", "code", "data", "dfn",
    "em", "i", "kbd", "mark", "q", "rb", "rp", "rt", "rtc", "ruby", "s",
    "samp", "small", "span", "strong", "sub", "sup", "time", "u", "var", "wbr",
    "caption", "col", "colgroup", "table", "tbody", "td", "tfoot", "th",
    "thead", "tr",
})

NON_TEXT_TAGS: frozenset[str] = frozenset({
    "script", "style", "textarea", "option", "noscript", "title",
})

ALLOWED_SCHEMES: frozenset[str] = frozenset({"http", "https", "ftp", "mailto", "tel"})
URL_ATTRIBUTES:  frozenset[str] = frozenset({"href", "src"})

_SCHEME_RE   = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.\-]*):")
# Browsers ignore control characters and whitespace inside a URL scheme.
_URL_IGNORED = re.compile(r"[\x00-\x20]")

_COLOR_PATTERNS = (
    re.compile(r"^#(0x)?[0-9a-f]+$", re.IGNORECASE),
    re.compile(r"^rgb\(\s*(\d+\s*,\s*){2}\d+\s*\)$"),
)

ALLOWED_STYLES: dict[str, tuple[re.Pattern[str], ...]] = {
    "color":      _COLOR_PATTERNS,
    "text-align": (re.compile(r"^left$"), re.compile(r"^right$"), re.compile(r"^center$")),
    "font-size":  (re.compile(r"^\d+(?:px|em|%)$"),),
}


@dataclass(frozen=True)
class SanitizePolicy:
    allowed_tags:       frozenset[str]
    allowed_attributes: dict[str, frozenset[str]] = field(default_factory=dict)
    allowed_styles:     dict[str, tuple[re.Pattern[str], ...]] = field(default_factory=dict)

    def attributes_for(self, tag: str) -> frozenset[str]:
        return self.allowed_attributes.get(tag, frozenset()) | self.allowed_attributes.get(
            "*", frozenset()
        )


MAIL_POLICY = SanitizePolicy(
    allowed_tags=DEFAULT_ALLOWED_TAGS | {"img", "p", "div", "br"},
    allowed_attributes={
        "a":   frozenset({"href", "name", "target"}),
        "img": frozenset({"src", "alt"}),
        "*":   frozenset({"style"}),
    },
    allowed_styles=ALLOWED_STYLES,
)

# Strip every tag; used before html → text conversion.
STRIP_ALL_POLICY = SanitizePolicy(allowed_tags=frozenset())


# ---------------------------------------------------------------------------
# Sanitizer
# ---------------------------------------------------------------------------

def _is_safe_url(value: str) -> bool:
    match = _SCHEME_RE.match(_URL_IGNORED.sub("", value))
    if match is None:
        return True   # relative reference
    return match.group(1).lower() in ALLOWED_SCHEMES


def _filter_style(style: str, allowed: dict[str, tuple[re.Pattern[str], ...]]) -> str:
    kept: list[str] = []
    for declaration in style.split(";"):
        prop, sep, value = declaration.partition(":")
        if not sep:
            continue
        prop, value = prop.strip().lower(), value.strip()
        patterns = allowed.get(prop)
        if patterns and any(p.match(value) for p in patterns):
            kept.append(f"{prop}:{value}")
    return ";".join(kept)


def sanitize_html(html: str, policy: SanitizePolicy = MAIL_POLICY) -> str:
    """Return ``html`` reduced to what ``policy`` allows."""
    soup = BeautifulSoup(html or "", "html.parser")

    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()

    for tag in soup.find_all(list(NON_TEXT_TAGS)):
        if not tag.decomposed:   # nested inside an already-dropped container
            tag.decompose()

    for tag in soup.find_all(True):
        if tag.name not in policy.allowed_tags:
            tag.unwrap()
            continue

        permitted = policy.attributes_for(tag.name)
        for attr in list(tag.attrs):
            value = tag.attrs[attr]
            if isinstance(value, list):
                value = " ".join(value)

            if attr not in permitted:
                del tag.attrs[attr]
            elif attr in URL_ATTRIBUTES and not _is_safe_url(value):
                del tag.attrs[attr]
            elif attr == "style":
                filtered = _filter_style(value, policy.allowed_styles)
                if filtered:
                    tag.attrs[attr] = filtered
                else:
                    del tag.attrs[attr]

    return str(soup)


def strip_tags(html: str) -> str:
    """Remove all markup, keeping text content (script/style bodies excluded)."""
    return sanitize_html(html, STRIP_ALL_POLICY)
