"""
Ordered selector fallback chains.

A chain is a list of extractor callables tried in order against a parsed
document; the first one that returns a non-empty value wins. Site markup
changes often, so every field is read through a chain rather than a single
selector.

Example:
    chain = [css_text(".compensation"), css_text(".salary-insights")]
    value = first_present(chain, soup, default="No compensation information")
"""

from typing import Callable, Iterable, Optional

from bs4 import BeautifulSoup, Tag

# root element -> value or None
Extractor = Callable[[Tag], Optional[str]]


def element_text(element: Tag) -> str:
    """Visible text with block boundaries kept as newlines."""
    return element.get_text(separator="\n", strip=True)


def css_text(selector: str, min_length: int = 1) -> Extractor:
    """Text of the first element matching selector, if at least min_length chars."""
    def extract(root: Tag) -> Optional[str]:
        element = root.select_one(selector)
        if element is None:
            return None
        text = element_text(element)
        return text if len(text) >= min_length else None
    return extract


def css_attr(selector: str, attr: str) -> Extractor:
    """Attribute of the first matching element."""
    def extract(root: Tag) -> Optional[str]:
        element = root.select_one(selector)
        if element is None:
            return None
        value = element.get(attr)
        if isinstance(value, list):
            value = " ".join(value)
        return value.strip() if value else None
    return extract


def css_html(selector: str) -> Extractor:
    """Outer HTML of the first matching element."""
    def extract(root: Tag) -> Optional[str]:
        element = root.select_one(selector)
        return str(element) if element is not None else None
    return extract


def first_present(chain: Iterable[Extractor], root: Tag, default: str = "") -> str:
    """Run extractors in order and return the first non-empty value."""
    for extractor in chain:
        value = extractor(root)
        if value:
            return value
    return default


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")
