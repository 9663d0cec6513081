"""WordprocessingML namespace helpers shared by the extractor and normalizer."""

from lxml import etree

NAMESPACES = {
    "w": "http://schemas.openxmlformats.org/wordprocessingml/2006/main",
    "r": "http://schemas.openxmlformats.org/officeDocument/2006/relationships",
    "cp": "http://schemas.openxmlformats.org/package/2006/metadata/core-properties",
    "dc": "http://purl.org/dc/elements/1.1/",
    "dcterms": "http://purl.org/dc/terms/",
    "rel": "http://schemas.openxmlformats.org/package/2006/relationships",
}

OFFICE_DOCUMENT_REL = (
    "http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument"
)


def w(tag: str) -> str:
    """Clark-notation name for a ``w:`` element or attribute."""
    return f"{{{NAMESPACES['w']}}}{tag}"


def child(element: etree._Element | None, tag: str) -> etree._Element | None:
    if element is None:
        return None
    return element.find(w(tag))


def val(element: etree._Element | None, attribute: str = "val") -> str | None:
    """Read a ``w:`` attribute from an element that may be missing."""
    if element is None:
        return None
    return element.get(w(attribute))


def to_int(value: str | None) -> int | None:
    """Parse an integer attribute; malformed values are treated as unset."""
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        try:
            return int(float(value))
        except ValueError:
            return None
